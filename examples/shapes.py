"""examples/shapes.py - A module to be imported with the load hook active."""


def area(width, height):
    def clamp(value):
        return max(value, 0)

    return clamp(width) * clamp(height)


def perimeter(width, height):
    """Sum of the sides."""
    return 2 * (width + height)


def unused():
    pass
