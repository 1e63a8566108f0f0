#!/usr/bin/env python3
"""Print which integrations the current environment configures."""

import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.append(str(Path(__file__).parent.parent))

from prismpath.config import get_settings, is_configured

# Make sure to load environment variables
load_dotenv()
settings = get_settings()

print("Environment:")
print(f"Remote backend (Supabase): {'configured' if settings.has_remote_backend else 'not configured, using mock store'}")
print(f"Mock store file: {settings.mock_store_path or 'in memory only'}")
print(f"GEMINI_API_KEY: {'set' if is_configured(settings.gemini_api_key) else 'missing'}")
print(f"OPENAI_API_KEY: {'set' if is_configured(settings.openai_api_key) else 'missing'} (model {settings.openai_model})")
print(f"TOGETHER_API_KEY: {'set' if is_configured(settings.together_api_key) else 'missing'} (model {settings.together_model})")
print(f"FRONTEND_URL: {settings.frontend_url or 'unset'}")
