"""Cloudflare Workers AI text-generation client."""

from .client import InferenceClient, InferenceError, WorkersAIClient

__all__ = ["InferenceClient", "InferenceError", "WorkersAIClient"]
