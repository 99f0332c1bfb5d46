"""Domain packages - one per bounded context (labs, scheduling)"""
