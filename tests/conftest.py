"""Shared test configuration."""

import os

# Print EMF metrics to stdout instead of looking for a CloudWatch agent
os.environ.setdefault("AWS_EMF_ENVIRONMENT", "local")
