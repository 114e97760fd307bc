"""Reflective parameters with lazily created editor widgets."""
from graipe.parameters.base import Parameter
from graipe.parameters.basic import BoolParameter, EnumParameter, FilenameParameter, LongStringParameter, StringParameter
from graipe.parameters.colortableparameter import ColorTableParameter
from graipe.parameters.datetimeparameter import DateTimeParameter
from graipe.parameters.group import ParameterGroup
from graipe.parameters.modelparameter import ModelParameter
from graipe.parameters.numeric import DoubleParameter, IntParameter, PointFParameter, PointParameter
from graipe.parameters.transformparameter import TransformParameter

__all__ = [
    "Parameter", "ParameterGroup",
    "BoolParameter", "StringParameter", "LongStringParameter", "EnumParameter", "FilenameParameter",
    "IntParameter", "DoubleParameter", "PointParameter", "PointFParameter",
    "DateTimeParameter", "TransformParameter", "ColorTableParameter", "ModelParameter",
]
