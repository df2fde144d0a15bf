"""Classroom attendance register.

This package is organized by feature modules (students, attendance, backup, ...)
with service/repository layers written once against a pluggable persistence
adapter (local JSON document store or MySQL).
"""
