"""Core domain package for commitscope.

Core contains subscription, detection, and scheduling logic without any
Telegram, GitHub, or storage-specific code, keeping the business logic portable.
"""
