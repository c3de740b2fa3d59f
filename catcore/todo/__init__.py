"""Batched todo lists kept in per-thread user state, and the tools that edit them."""