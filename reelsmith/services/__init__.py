"""HTTP clients for external collaborators: transcription, LLM text, hashtags."""
