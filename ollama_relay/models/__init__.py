"""Request and response models for the Ollama-shaped API."""
