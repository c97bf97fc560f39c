"""
Minimal conftest for unit tests that don't require the app.
"""

import os

# Set test environment variables
os.environ["JWT_SECRET"] = "test-secret-key-do-not-use-in-production"
