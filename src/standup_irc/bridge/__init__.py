"""Glue between the IRC client and the command layer."""
