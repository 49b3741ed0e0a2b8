"""Prompt templates for extraction routines."""

from pitchflow.prompts.loader import load_prompt, render_prompt

__all__ = ["load_prompt", "render_prompt"]
