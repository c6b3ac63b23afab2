"""
Test package for the progress trajectory pipeline.

Run with:
    pytest progress_trajectory/tests
"""
