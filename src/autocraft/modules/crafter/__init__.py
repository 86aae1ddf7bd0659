"""
Attempt loop, run state and cancellable delays.
"""
