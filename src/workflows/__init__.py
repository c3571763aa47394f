# src/workflows/__init__.py — v1
