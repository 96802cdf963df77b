"""Data models for Notewell."""
