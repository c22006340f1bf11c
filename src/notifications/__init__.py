# src/notifications/__init__.py — v1
