"""
Input/Output Manager
Handles model documents (.xml / .xgz), CSV export of list models and
saving/loading whole workspaces to .h5 files.

A workspace file holds one uint8 dataset per model (its gzip compressed
xml document) and one per view controller (its parameter xml) together
with the index of the displayed model.
"""
from __future__ import annotations

import gzip
import logging
import os
import xml.etree.ElementTree as ET
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Optional

import h5py
import numpy as np

from graipe.config import XGZ_SUFFIX
from graipe.model.base import ListModel, Model
from graipe.model.registry import create_model

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

# Get module logger
logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("graipe")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"

WORKSPACE_FORMAT = "graipe-workspace"


def _to_blob(data: bytes) -> np.ndarray:
    return np.frombuffer(data, dtype=np.uint8)


def _from_blob(dset: h5py.Dataset) -> bytes:
    return dset[:].tobytes()


def _attr_str(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class IOManager:

    # ---- MODEL DOCUMENTS ----

    @staticmethod
    def model_to_bytes(model: Model) -> bytes:
        element = model.serialize()
        ET.indent(element)
        return ET.tostring(element, encoding="utf-8", xml_declaration=True)

    @staticmethod
    def model_from_bytes(data: bytes, workspace: Optional[Workspace] = None) -> Model:
        """Create a model of the type named by the document's root element."""
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            msg = f"Model document is not valid xml: {e}"
            logger.error(msg)
            raise ValueError(msg) from e

        try:
            model = create_model(root.tag, workspace)
        except KeyError as e:
            msg = f"Unknown model type <{root.tag}>"
            logger.error(msg)
            raise ValueError(msg) from e

        if not model.deserialize(root):
            msg = f"{root.tag} document could not be restored."
            logger.error(msg)
            raise ValueError(msg)
        return model

    @staticmethod
    def write_model(model: Model, filepath: str) -> None:
        """Write a model document. Files ending with .xgz are gzip compressed."""
        logger.info(f"Saving {model.type_name()} '{model.name()}' to: {filepath}")
        data = IOManager.model_to_bytes(model)
        if filepath.lower().endswith(XGZ_SUFFIX):
            data = gzip.compress(data)
        with open(filepath, "wb") as f:
            f.write(data)

    @staticmethod
    def read_model(filepath: str, workspace: Optional[Workspace] = None) -> Model:
        logger.info(f"Loading model from: {filepath}")
        if not os.path.isfile(filepath):
            msg = f"File '{filepath}' does not exist."
            logger.error(msg)
            raise ValueError(msg)

        with open(filepath, "rb") as f:
            data = f.read()
        if filepath.lower().endswith(XGZ_SUFFIX):
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError) as e:
                msg = f"File '{filepath}' is not a valid gzip file: {e}"
                logger.error(msg)
                raise ValueError(msg) from e

        model = IOManager.model_from_bytes(data, workspace)
        logger.debug(f"Loaded {model.type_name()} '{model.name()}'.")
        return model

    # ---- CSV ----

    @staticmethod
    def export_csv(model: ListModel, filepath: str) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(model.to_csv())
        logger.info(f"Exported {model.size()} items of '{model.name()}' to: {filepath}")

    @staticmethod
    def import_csv(model: ListModel, filepath: str) -> None:
        with open(filepath, "r", encoding="utf-8") as f:
            text = f.read()
        if not model.from_csv(text):
            msg = f"CSV file '{filepath}' could not be imported into '{model.name()}'."
            logger.error(msg)
            raise ValueError(msg)
        logger.info(f"Imported {model.size()} items into '{model.name()}'.")

    # ---- WORKSPACE ----

    @staticmethod
    def save_workspace(workspace: Workspace, filepath: str) -> None:
        logger.info(f"Saving workspace to: {filepath}")
        models = workspace.models()
        try:
            with h5py.File(filepath, "w") as f:
                f.attrs["version"] = APP_VERSION
                f.attrs["format"] = WORKSPACE_FORMAT

                grp_models = f.create_group("models")
                for i, model in enumerate(models):
                    dset = grp_models.create_dataset(
                        f"{i:04d}", data=_to_blob(IOManager.model_to_bytes(model)), compression="gzip"
                    )
                    dset.attrs["type"] = model.type_name()
                    dset.attrs["name"] = model.name()

                grp_views = f.create_group("views")
                for i, vc in enumerate(workspace.view_controllers()):
                    element = ET.Element("ViewController")
                    vc.parameters().serialize(element)
                    dset = grp_views.create_dataset(
                        f"{i:04d}", data=_to_blob(ET.tostring(element, encoding="utf-8")), compression="gzip"
                    )
                    dset.attrs["type"] = vc.type_name()
                    dset.attrs["model"] = models.index(vc.model())

            logger.info(f"Workspace saved ({len(models)} models, {len(workspace.view_controllers())} views).")

        except Exception as e:
            logger.exception(f"Failed to save workspace: {e}")
            raise e

    @staticmethod
    def load_workspace(workspace: Workspace, filepath: str) -> None:
        # Import here, the view layer depends on the models.
        from graipe.view.registry import create_view_controller

        logger.info(f"Loading workspace from: {filepath}")
        if not h5py.is_hdf5(filepath):
            msg = f"File '{filepath}' is not a valid HDF5 file."
            logger.error(msg)
            raise ValueError(msg)

        with h5py.File(filepath, "r") as f:
            if _attr_str(f.attrs.get("format", "")) != WORKSPACE_FORMAT:
                msg = f"File '{filepath}' is not a GRAIPE workspace."
                logger.error(msg)
                raise ValueError(msg)

            workspace.reset()

            models: list[Model] = []
            if "models" in f:
                for key in sorted(f["models"].keys()):
                    model = IOManager.model_from_bytes(_from_blob(f["models"][key]), workspace)
                    workspace.add_model(model)
                    models.append(model)

            if "views" in f:
                for key in sorted(f["views"].keys()):
                    dset = f["views"][key]
                    model_idx = int(dset.attrs["model"])
                    if not 0 <= model_idx < len(models):
                        logger.warning(f"View '{key}' refers to missing model {model_idx}, skipped.")
                        continue
                    vc = create_view_controller(_attr_str(dset.attrs["type"]), models[model_idx])
                    group = ET.fromstring(_from_blob(dset)).find(vc.parameters().type_name())
                    if group is None or not vc.parameters().deserialize(group):
                        logger.warning(f"View '{key}': parameters could not be restored, using defaults.")
                    workspace.add_view_controller(vc)

        logger.info(f"Workspace loaded from: {filepath}")
