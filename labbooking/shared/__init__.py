"""Shared building blocks - errors, time parsing and booking locks"""
