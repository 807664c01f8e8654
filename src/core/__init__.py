"""
Core rules for project images.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns, so the rules can be tested in isolation.
"""
