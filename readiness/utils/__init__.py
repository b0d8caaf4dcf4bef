"""Shared helpers for error sanitizing and log redaction"""
