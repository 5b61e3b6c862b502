"""
Pitchside: training session planning and player development for football clubs.
"""

__version__ = "0.1.0"
