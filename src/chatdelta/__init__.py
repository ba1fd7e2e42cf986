"""
chatdelta - send one prompt to ChatGPT, Gemini and Claude concurrently,
show the answers side by side and summarize where they differ.
"""

__version__ = "0.1.0"
