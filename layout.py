# layout.py

"""
Cluster Layout

The anchor-assignment scheme. Categories sit on a grid of cells inside a
canvas, and every particle of a category is anchored at the centre of its
cell (its cluster focus). Catalog records are plain dicts; the only field
this module needs is 'type', which names the record's category. Every other
field rides along as particle metadata.
"""

from collections import namedtuple
import numpy as np
from particle import Particle

Category = namedtuple('Category', ['name', 'type', 'row', 'col', 'color'])

def load_categories(records):
    """Build Category tuples from config records, keyed by type."""
    categories = {}
    for record in records:
        category = Category(
            name=record.get('name', ''),
            type=record['type'],
            row=int(record['row']),
            col=int(record['col']),
            color=record['color'],
        )
        categories[category.type] = category
    return categories

def cluster_focus(row: int, col: int, width: int, height: int, rows: int = 2, cols: int = 3):
    """
    Centre of grid cell (row, col), both 1-based, in integer pixel steps.
    For the default 2x3 grid on an 840x600 canvas, (1, 1) maps to (140, 150).
    """
    cx = col * (width // cols) - width // (2 * cols)
    cy = row * (height // rows) - height // (2 * rows)
    return float(cx), float(cy)

def label_position(category: Category, width: int, height: int, offset: int = 135):
    """Where to draw a category's name: above clusters on the first row, below the rest."""
    cx, cy = cluster_focus(category.row, category.col, width, height)
    return cx, cy + (-offset if category.row == 1 else offset)

def _category_for(record, categories) -> Category:
    try:
        return categories[record['type']]
    except KeyError:
        raise ValueError(f"Catalog record {record.get('name', record)!r} has unknown type {record.get('type')!r}") from None

def menu_particles(records, categories, width: int, height: int, radius: float, rng: np.random.Generator):
    """
    One particle per catalog record, anchored at its category's cluster focus
    and scattered at random over the canvas to start.
    """
    bounds = np.array([width, height], dtype=np.float64)
    particles = []
    for record in records:
        category = _category_for(record, categories)
        particles.append(Particle(
            anchor=cluster_focus(category.row, category.col, width, height),
            radius=radius,
            group=category.type,
            position=rng.random(2) * bounds,
            metadata=record,
        ))
    return particles

def plate_particle(record, width: int, height: int, radius: float) -> Particle:
    """A selected copy of a record, anchored at the canvas centre. The plate set picks its spawn position."""
    return Particle(
        anchor=(width / 2, height / 2),
        radius=radius,
        group=record['type'],
        metadata=record,
    )

def default_selection(records, defaults):
    """Records named in defaults, once per occurrence, in catalog order."""
    selection = []
    for record in records:
        count = sum(1 for name in defaults if name == record['name'])
        selection.extend([record] * count)
    return selection
