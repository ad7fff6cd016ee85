"""Core domain package for reviewmail.

Core contains the offline detection, notification dedup, and scheduling logic
without any SMTP, Telegram, or storage-specific code, keeping it portable.
"""
