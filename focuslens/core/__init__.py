"""Signal extraction, calibration, scoring and session control."""
