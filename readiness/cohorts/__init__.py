"""Accelerator cohorts and cohort readiness analytics"""
