"""
Turn orchestration and the backend clients it drives.
"""
