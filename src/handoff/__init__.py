# src/handoff/__init__.py — v1
