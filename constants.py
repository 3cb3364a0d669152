# constants.py

"""
Application Constants

This module defines static configuration values for the application's framework.
These are not expected to change between simulation runs. Simulation tunables
live in config.json.

Data Contract:
- All values are immutable constants.
- Units are specified in comments where applicable.
"""

# Canvas dimensions
MENU_WIDTH = 840  # Pixels
PLATE_WIDTH = 440  # Pixels
CANVAS_HEIGHT = 600  # Pixels

# Screen dimensions (menu canvas on the left, plate canvas on the right)
WIDTH = MENU_WIDTH + PLATE_WIDTH  # Pixels
HEIGHT = CANVAS_HEIGHT  # Pixels

# Category labels
LABEL_OFFSET = 135  # Pixels from the cluster focus to the category label

# Framerate
FPS = 60  # Frames per second

# Colors (RGB)
BLACK = (0, 0, 0)
BACKGROUND = (29, 31, 33)
DIVIDER = (55, 59, 65)
LABEL_COLOR = (197, 200, 198)
FALLBACK_NODE_COLOR = (150, 152, 150)

# Text
FONT_SIZE = 18  # Points
NODE_FONT_SIZE = 13  # Points

# Window Title
TITLE = "Cluster Layout"
