"""Investor matching and contact deduplication"""
