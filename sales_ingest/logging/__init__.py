"""Labelled stdlib logging setup."""
