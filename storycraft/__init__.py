"""storycraft: resilient YouTube content acquisition and structured pitch generation."""

__version__ = "0.1.0"
