"""blorbpal - adds BPal palette substitution chunks to Blorb archives."""

__version__ = "1.0.0"
