from pypolyfem.utils.meshgen import (delaunay_rectangle, structured_triangles, structured_quads,
                                     hexagonal_polygons, structured_hexahedra, kuhn_tetrahedra,
                                     jitter_interior)

__all__ = ["delaunay_rectangle", "structured_triangles", "structured_quads", "hexagonal_polygons",
           "structured_hexahedra", "kuhn_tetrahedra", "jitter_interior"]
