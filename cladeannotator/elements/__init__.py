from cladeannotator.elements.partition import Partition

__all__ = ["Partition"]
