# renderer.py

import pygame
import constants
from layout import label_position

class CanvasRenderer:
    """
    Draws TickSnapshots of one particle set onto a pygame surface.

    Data Contract:
    - Inputs:
        - surface (pygame.Surface): The canvas area to draw on (usually a subsurface).
        - categories (dict): Category tuples keyed by type, used for colors and labels.
        - show_labels (bool): Whether to draw category names at their cluster focus.
    - Side Effects: Draws to the surface. Never touches the particle set.
    - Invariants: Snapshots are read, never modified.
    """
    def __init__(self, surface: pygame.Surface, categories: dict, show_labels: bool = False):
        self.surface = surface
        self.categories = categories
        self.show_labels = show_labels
        self.font = pygame.font.Font(None, constants.FONT_SIZE)
        self.node_font = pygame.font.Font(None, constants.NODE_FONT_SIZE)
        self._colors = {
            category.type: pygame.Color(category.color) for category in categories.values()
        }
        self.latest = None

    def receive(self, snapshot):
        """Tick callback: keep the newest snapshot for the next frame."""
        self.latest = snapshot

    def _draw_labels(self):
        width, height = self.surface.get_size()
        for category in self.categories.values():
            if not category.name:
                continue
            x, y = label_position(category, width, height, constants.LABEL_OFFSET)
            text = self.font.render(category.name, True, constants.LABEL_COLOR)
            self.surface.blit(text, text.get_rect(center=(int(x), int(y))))

    def draw(self):
        self.surface.fill(constants.BACKGROUND)
        if self.show_labels:
            self._draw_labels()
        if self.latest is None:
            return

        snapshot = self.latest
        for position, radius, group, record in zip(snapshot.positions, snapshot.radii, snapshot.groups, snapshot.metadata):
            center = (int(position[0]), int(position[1]))
            color = self._colors.get(group, constants.FALLBACK_NODE_COLOR)
            pygame.draw.circle(self.surface, color, center, int(radius))
            if isinstance(record, dict) and 'name' in record:
                text = self.node_font.render(str(record['name']), True, constants.BLACK)
                self.surface.blit(text, text.get_rect(center=center))
