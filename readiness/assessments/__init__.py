"""LLM-backed quick diagnostics: VC verdict, roast verdict, metric estimate, answer consistency"""
