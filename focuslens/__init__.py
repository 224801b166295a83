"""
FocusLens - Behavioral Attention Index

Derives a real-time 0-100 attention index from per-frame facial landmarks:
eye openness, head stability and facial-expression deviation are extracted,
smoothed and combined after a short baseline calibration.
"""

__version__ = "1.0.0"
__author__ = "FocusLens Team"
__description__ = "Real-time behavioral attention index from facial landmarks"
