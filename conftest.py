"""Global pytest configuration."""

import os

# Tests always run against the deterministic stub collaborator
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("COLLABORATOR_BASE_URL", None)
