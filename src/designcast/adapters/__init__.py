"""Adapters connecting the core to Figma webhooks and Telegram."""
