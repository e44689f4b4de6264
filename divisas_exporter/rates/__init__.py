"""Rates package - upstream schema, HTTP fetcher and poll loop"""
