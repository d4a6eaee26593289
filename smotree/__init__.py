"""
SmoTree - frame-accurate video review toolkit.

Reviewers attach timestamped comments to a video project and hand the
result to DaVinci Resolve as markers: xmeml (Final Cut Pro 7 XML), a
CMX-style EDL, or a semicolon-separated CSV.
"""

__version__ = "0.1.0"
