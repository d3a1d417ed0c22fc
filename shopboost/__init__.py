"""Shop Boost onboarding import engine."""

__version__ = "0.4.0"
