"""Lab domain - lab catalogue management"""
