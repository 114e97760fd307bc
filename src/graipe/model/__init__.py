"""Data models of a workspace. Importing this package registers all model types."""
from graipe.model.base import ListModel, Model, RasteredModel
from graipe.model.image import ByteImage, Image, IntImage
from graipe.model.polygonlist import PolygonList2D, WeightedPolygonList2D
from graipe.model.registry import create_model, list_model_types, register_model
from graipe.model.vectorfield import DenseVectorField2D, SparseVectorField2D

__all__ = [
    "Model", "RasteredModel", "ListModel",
    "Image", "IntImage", "ByteImage",
    "PolygonList2D", "WeightedPolygonList2D",
    "SparseVectorField2D", "DenseVectorField2D",
    "create_model", "list_model_types", "register_model",
]
