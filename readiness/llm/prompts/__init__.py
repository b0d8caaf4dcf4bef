"""
Prompt templates.

Templates are plain .txt files rendered with str.format(); literal JSON braces
in a template are doubled ({{ }}).
"""

from __future__ import annotations

from pathlib import Path

PROMPTS_DIR = Path(__file__).parent


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self):
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Raw template text for prompt_name (file name without .txt).

        Raises:
            FileNotFoundError: No such template
        """
        if prompt_name not in self._cache:
            prompt_path = PROMPTS_DIR / f"{prompt_name}.txt"
            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
            self._cache[prompt_name] = prompt_path.read_text(encoding="utf-8")
        return self._cache[prompt_name]

    def render(self, prompt_name: str, **kwargs) -> str:
        return self.load_prompt(prompt_name).format(**kwargs)


_loader = PromptLoader()


def render_prompt(prompt_name: str, **kwargs) -> str:
    """Render a template with the shared loader"""
    return _loader.render(prompt_name, **kwargs)
