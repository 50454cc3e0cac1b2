"""
Model backend client and models for Ponder.

This package provides the Ollama client used for chat, tool calling and
streaming, along with the retry strategy and response models.
"""
