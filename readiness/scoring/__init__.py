"""Deterministic memo scoring: holistic scorecard and post-generation reconciliation"""
