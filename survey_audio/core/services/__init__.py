"""
Pure domain services of the audio pipeline.
"""
