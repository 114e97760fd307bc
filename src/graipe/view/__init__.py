"""View controllers rendering models into a QGraphicsScene. Importing this package registers all of them."""
from graipe.view.image import ImageRGBViewController, ImageSingleBandViewController
from graipe.view.polygonlist import PolygonList2DViewController
from graipe.view.registry import create_view_controller, list_keys, view_controllers_for
from graipe.view.vectorfield import DenseVectorField2DViewController, SparseVectorField2DViewController, VectorDrawer
from graipe.view.viewcontroller import ViewController

__all__ = [
    "ViewController",
    "ImageSingleBandViewController", "ImageRGBViewController",
    "PolygonList2DViewController",
    "VectorDrawer", "SparseVectorField2DViewController", "DenseVectorField2DViewController",
    "create_view_controller", "list_keys", "view_controllers_for",
]
