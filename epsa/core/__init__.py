"""
Core Layer - scoring engines and report export
"""
