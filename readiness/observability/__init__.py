"""Logging and in-memory telemetry"""
