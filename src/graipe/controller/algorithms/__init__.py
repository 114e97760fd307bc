"""Shipped algorithms. Importing this package registers all of them."""
from graipe.controller.algorithms import contours, filters, imageio, vectorfields

__all__ = ["contours", "filters", "imageio", "vectorfields"]
