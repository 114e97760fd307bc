"""GRAIPE - GRAphical Image Processing Environment."""
