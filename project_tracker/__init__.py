"""
Project tracker backend package.

This package provides a FastAPI application for an installation business's
job dashboard, together with the storage and database abstractions it runs
on and a dual-mode client that works either against a local JSON store or a
remote instance of the API.
"""
