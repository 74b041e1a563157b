"""Leafdoc AI Service: Gemini-backed plant leaf diagnosis and plant-care chat."""
