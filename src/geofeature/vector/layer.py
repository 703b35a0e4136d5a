# src/geofeature/vector/layer.py

"""
This module defines the tabular container features are exported to and imported from.
"""

import logging
from typing import Dict, List, Optional

import geopandas as gpd

from geofeature.schema import FeatureDefinition

log = logging.getLogger(__name__)

__all__ = [
    "Vector"
]

class Vector:
    """
    GeoDataFrame holding one row per feature, together with the schema of those features.

    The index, when named 'fid', carries feature identifiers. The active
    geometry column carries the first geometry field of each feature.

    Args:
        data (gpd.GeoDataFrame): Rows of attribute values.
        definition (FeatureDefinition, optional): Schema the rows were exported from,
            used by default when the rows are turned back into features.
    """
    def __init__(self, data: gpd.GeoDataFrame, definition: Optional[FeatureDefinition] = None):
        if not isinstance(data, gpd.GeoDataFrame):
            raise TypeError(f"Expected GeoDataFrame, got {type(data)}")
        if definition is not None and not isinstance(definition, FeatureDefinition):
            raise TypeError(f"Expected FeatureDefinition, got {type(definition)}")
        self._data = data
        self._definition = definition

    @property
    def data(self) -> gpd.GeoDataFrame:
        return self._data

    @property
    def definition(self) -> Optional[FeatureDefinition]:
        return self._definition

    @property
    def crs(self):
        return self._data.crs

    @property
    def columns(self) -> List[str]:
        """Attribute column names, without the active geometry column."""
        geometry_name = self._data.geometry.name
        return [c for c in self._data.columns if c != geometry_name]

    @property
    def fids(self) -> Optional[list]:
        """Index values when the index is named 'fid', else None."""
        if self._data.index.name != "fid":
            return None
        return self._data.index.tolist()

    def field_columns(self, definition: Optional[FeatureDefinition] = None) -> Dict[str, int]:
        """
        Matches attribute columns to fields by name, case-insensitively.

        Args:
            definition (FeatureDefinition, optional): Schema to match against. Defaults to
                the attached definition.

        Returns:
            Dict[str, int]: Column name to field index. Columns without a field are left out.

        Raises:
            ValueError: If no definition is given and none is attached.
        """
        definition = definition if definition is not None else self._definition
        if definition is None:
            raise ValueError("No feature definition attached to this Vector")

        matched = {}
        for column in self.columns:
            index = definition.field_index(str(column))
            if index < 0:
                log.debug(f"Column '{column}' has no field in '{definition.name}'; skipped")
                continue
            matched[column] = index
        return matched

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        schema = self._definition.name if self._definition is not None else None
        return f"<Vector features={len(self._data)} definition={schema} crs={self.crs}>"
