"""
Rating-based projection models.

Example:
    >>> from spread_edge.models import ModelProjector
    >>>
    >>> projector = ModelProjector()
    >>> projection = projector.project(game, home_rating, away_rating)
    >>> print(projection.model_spread_home, projection.model_total)
"""

from .projector import ModelProjector, Projection

__all__ = [
    "ModelProjector",
    "Projection",
]
