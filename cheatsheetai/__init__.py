"""
Cheatsheet AI - A tool to turn project documentation into dense, LLM-ready cheatsheets.

This package provides functionality to:
1. Load documentation sources from JSON files or environment variables
2. Shallow-clone each source repository
3. Extract the documentation text with files-to-prompt
4. Generate a cheatsheet with the Gemini API
5. Save one Markdown cheatsheet per source
"""

__version__ = "0.1.0"
