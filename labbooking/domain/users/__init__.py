"""User domain - faculty and admin accounts"""
