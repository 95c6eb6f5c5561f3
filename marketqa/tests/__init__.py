"""Test package for marketqa."""
