"""Extraction pipeline services: normalize, filter, extract, group, resolve, match."""
