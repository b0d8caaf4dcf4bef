"""Settings, persistence, budget and retry primitives"""
