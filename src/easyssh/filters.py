"""Filters: transforms applied to the discovered target list."""

import dataclasses
import logging
from collections.abc import Sequence

from easyssh import ec2
from easyssh.plugins import (
    Argument,
    Plugin,
    Registry,
    require_arguments,
    require_child,
    require_literal,
)
from easyssh.target import Target


logger = logging.getLogger(__name__)


class Filter(Plugin):
    """Base class for filters."""

    name = "filter"

    def filter(self, targets: list[Target]) -> list[Target]:
        raise NotImplementedError


registry: Registry[Filter] = Registry("filter")


def make(definition: str) -> Filter:
    """Build a filter tree from its definition string."""
    return registry.make(definition)


def supported_names() -> list[str]:
    return registry.names()


@registry.register("id")
class Identity(Filter):
    name = "id"

    def filter(self, targets):
        return targets


@registry.register("list")
class Sequential(Filter):
    """Apply child filters in order, feeding each the previous output."""

    name = "list"

    def __init__(self) -> None:
        self.children: list[Filter] = []

    def set_args(self, args: Sequence[Argument]) -> None:
        self.children = [require_child(self, arg, Filter) for arg in args]

    def filter(self, targets):
        for child in self.children:
            targets = child.filter(targets)
            logger.debug("Targets after filter %s: %s", child, targets)
        return targets

    def __str__(self) -> str:
        return f"<{self.name} {' '.join(str(c) for c in self.children)}>"


@registry.register("first")
class DropFirst(Filter):
    """Drop the first target.

    Note the registered name is "first", but the filter removes the first
    target rather than selecting it. Existing definitions rely on this.
    """

    name = "first"

    def filter(self, targets):
        return targets[1:]


@registry.register("ec2-instance-id")
class Ec2InstanceId(Filter):
    """Replace EC2 instance ids in hostnames with the instance's public address.

    Targets whose host holds no instance id are passed through without a
    lookup. Failed lookups leave the target as it was.

    Attributes:
        region: AWS region used for every lookup.
    """

    name = "ec2-instance-id"

    def __init__(self) -> None:
        self.region = ""

    def set_args(self, args: Sequence[Argument]) -> None:
        require_arguments(self, 1, args)
        self.region = require_literal(self, args[0], "a region name")

    def filter(self, targets):
        result: list[Target] = []
        for target in targets:
            result.append(self._resolve(target))
        return result

    def _resolve(self, target: Target) -> Target:
        instance_id = ec2.find_instance_id(target.host)
        if instance_id is None:
            logger.debug(
                "Target %s doesn't look like an EC2 instance id, skipping lookup in %s",
                target, self.region,
            )
            return target

        address = ec2.lookup_public_address(instance_id, self.region)
        if address is None:
            logger.info(
                "EC2 instance lookup failed for %s (%s) in region %s",
                target.host, instance_id, self.region,
            )
            return target
        return dataclasses.replace(target, host=address)

    def __str__(self) -> str:
        return f"<{self.name} {self.region}>"
