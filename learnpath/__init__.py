"""
Learning Path Dashboard engine
Classifies video content into learning paths, tracks per-path watch
progress, and recommends what to study next.
"""

__version__ = "0.1.0"
