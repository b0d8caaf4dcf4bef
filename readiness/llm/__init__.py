"""AI gateway client, retry, JSON extraction and prompt templates"""
