"""Shared infrastructure: logging, correlation, errors, shutdown"""
