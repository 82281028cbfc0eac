"""Seq API key action plugin."""

from plugins.actions.seq_api_key.executor import SeqApiKeyPlugin

__all__ = ["SeqApiKeyPlugin"]
