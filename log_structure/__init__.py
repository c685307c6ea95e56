"""Infer the structure of semi-structured text logs."""
