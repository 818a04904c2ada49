"""LLM - Gemini generation with rate limiting and retry"""
