"""
ePSA prostate cancer risk assessment service.
"""
__version__ = "1.0.0"
