"""Personalized discovery engine: context-aware mood suggestions and faceted search."""
