# src/codec/__init__.py — v1
