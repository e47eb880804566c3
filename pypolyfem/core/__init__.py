from pypolyfem.core.topology import Node, Face, Cell, EntityKind, EntityClass
from pypolyfem.core.fields import Field, FieldStorage
from pypolyfem.core.mesh import Mesh
from pypolyfem.core.partition import Distribution, kmeans_partition

__all__ = ["Node", "Face", "Cell", "EntityKind", "EntityClass", "Field", "FieldStorage",
           "Mesh", "Distribution", "kmeans_partition"]
