"""Desired-state documents and OS→image resolution for RPM builds."""

from rpm_builder.resources.builder import (
    build_config_resource,
    generate_spec_file,
    pipeline_run_resource,
    source_file_resources,
)
from rpm_builder.resources.images import (
    DEFAULT_BUILD_IMAGE,
    DEFAULT_OS_IMAGES,
    OSImageMap,
    build_image_map,
    map_os_to_image,
)

__all__ = [
    "DEFAULT_BUILD_IMAGE",
    "DEFAULT_OS_IMAGES",
    "OSImageMap",
    "build_config_resource",
    "build_image_map",
    "generate_spec_file",
    "map_os_to_image",
    "pipeline_run_resource",
    "source_file_resources",
]
