"""User-activity telemetry and reporting for the HVAC diagnostic assistant."""

__version__ = "0.1.0"
