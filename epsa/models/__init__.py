"""
API request/response models
"""
