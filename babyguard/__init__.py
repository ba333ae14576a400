"""Vital-sign monitoring core for the BabyGuard sensor.

This package contains the acquisition, classification, deduplication and
alert-dispatch pipeline, kept free of any UI code.
"""
