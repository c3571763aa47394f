# src/history/__init__.py — v1
