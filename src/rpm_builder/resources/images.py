from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BUILD_IMAGE = "quay.io/centos/centos:stream9"

OSImageMap = Mapping[str, str]

# Symbolic target OS → build container image.
# RHIVOS and AGL have no public builder images; they build on their upstreams.
DEFAULT_OS_IMAGES: OSImageMap = MappingProxyType(
    {
        # Automotive
        "rhivos": "quay.io/centos/centos:stream9",
        "agl": "quay.io/fedora/fedora:40",
        "ubuntu-core": "docker.io/library/ubuntu:22.04",
        # Red Hat Enterprise Linux (UBI)
        "rhel-9": "registry.access.redhat.com/ubi9/ubi:latest",
        "rhel-8": "registry.access.redhat.com/ubi8/ubi:latest",
        "rhel-7": "registry.access.redhat.com/ubi7/ubi:latest",
        # CentOS Stream
        "centos-stream-10": "quay.io/centos/centos:stream10",
        "centos-stream-9": "quay.io/centos/centos:stream9",
        "centos-stream-8": "quay.io/centos/centos:stream8",
        # CentOS Linux (legacy)
        "centos-7": "quay.io/centos/centos:7",
        # Fedora
        "fedora-40": "quay.io/fedora/fedora:40",
        "fedora-39": "quay.io/fedora/fedora:39",
        "fedora-38": "quay.io/fedora/fedora:38",
        "fedora-coreos": "quay.io/fedora/fedora-coreos:stable",
        "fedora-iot": "quay.io/fedora/fedora:40",
    }
)


def looks_like_image(value: str) -> bool:
    """True if *value* carries a registry separator (``/``) or tag delimiter (``:``)."""
    return "/" in value or ":" in value


def map_os_to_image(
    target_os: str,
    image_map: OSImageMap = DEFAULT_OS_IMAGES,
    *,
    default: str = DEFAULT_BUILD_IMAGE,
) -> str:
    """Resolve a target OS identifier to a build image reference.

    Image references pass through unchanged.  Unknown identifiers resolve
    to *default* instead of failing the build.
    """
    if looks_like_image(target_os):
        return target_os

    image = image_map.get(target_os)
    if image is None:
        logger.warning("unknown_target_os", target_os=target_os, image=default)
        return default
    return image


def build_image_map(overrides: Mapping[str, str] | None = None) -> OSImageMap:
    """Return an immutable map of the defaults updated with *overrides*."""
    merged = dict(DEFAULT_OS_IMAGES)
    if overrides:
        merged.update(overrides)
    return MappingProxyType(merged)
