"""Cross-cutting services - notifications and status automation"""
