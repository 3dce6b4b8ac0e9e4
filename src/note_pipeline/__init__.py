"""YouTube learning-note pipeline.

This package turns a video identifier into a time-segmented learning note:
caption extraction with a parser cascade, windowed segmentation, key-point
extraction, two AI summarisation stages with deterministic fallbacks, and
final validation.
"""
