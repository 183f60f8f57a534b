"""
Mapping Service - Class Metadata Resolution Layer

Resolves, builds and caches the structural mapping metadata that
describes how a hierarchy of application classes maps to a relational store:
- Ancestor chain resolution with transient class skipping
- One definition and one metadata object per class
- Pluggable generated-artifact policy (never / always / if-missing)
- Whole-hierarchy validation per resolution
"""

__version__ = "0.1.0"
