"""Configuration and settings"""
from .settings import ServiceConfig, get_gemini_key, load_env_file

__all__ = ["ServiceConfig", "get_gemini_key", "load_env_file"]
