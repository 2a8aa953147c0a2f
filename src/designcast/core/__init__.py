"""Core domain package for designcast.

Core contains commit parsing, notification policy, dedup/rate guarding and
message bookkeeping without any Figma or Telegram specific code, keeping the
business logic portable.
"""
