from .metadata import MetadataError, add_to_jpeg, add_to_png, get_metadata_adder

__all__ = ['MetadataError', 'add_to_png', 'add_to_jpeg', 'get_metadata_adder']
