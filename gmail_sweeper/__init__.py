"""
Gmail Sweeper - scheduled purge, delete and archive jobs for Gmail
"""
