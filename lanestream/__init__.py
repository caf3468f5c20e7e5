"""
Lane Stream: temporally smoothed lane curves from a row-anchor lane model.

Decodes the grid-classification output of an Ultra Fast Lane Detection
style model, selects and tracks lanes across frames, and validates them
against expected lane geometry.
"""

__version__ = "0.1.0"
