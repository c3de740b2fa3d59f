"""Filesystem-backed three-tier memory: short-term, mid-term and long-term."""