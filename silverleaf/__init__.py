"""
Silver Leaf Portal Backend
==========================

Flask-based backend for the Silver Leaf University faculty/student portal.

Structure:
- routes/: API route blueprints
- services/: LLM invocation and the feedback analyzer
- storage.py: flat JSON dataset access
- documents.py: text extraction from uploaded PDF/DOCX/TXT files
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
