# src/attempts/__init__.py — v1
