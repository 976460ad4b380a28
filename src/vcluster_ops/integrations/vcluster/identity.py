"""Composite identifiers for resources without a single server-assigned key."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from vcluster_ops.integrations.vcluster.exceptions import MalformedIdentifierError


class CompositeIdentity:
    """Encodes a tuple of named string fields into one opaque identifier.

    Fields must be non-empty and must not contain the separator; such
    tuples cannot round-trip and are rejected when encoding.

    Example:
        >>> release_id = CompositeIdentity(("cluster", "namespace", "release"))
        >>> release_id.encode(("prod", "ns1", "mysql"))
        'prod:ns1:mysql'
        >>> release_id.decode("prod:ns1:mysql")
        ('prod', 'ns1', 'mysql')
    """

    def __init__(self, fields: Sequence[str], separator: str = ":") -> None:
        """Initialize the identity scheme.

        Args:
            fields: Ordered names of the tuple fields.
            separator: Reserved separator character.
        """
        if not fields:
            raise ValueError("a composite identity needs at least one field")
        if not separator:
            raise ValueError("separator must not be empty")
        self.fields = tuple(fields)
        self.separator = separator

    def encode(self, values: Sequence[str] | Mapping[str, str]) -> str:
        """Join ``values`` (positional or keyed by field name) into an identifier.

        Raises:
            MalformedIdentifierError: If a value is missing, empty, or
                contains the separator.
        """
        if isinstance(values, Mapping):
            parts = tuple(values.get(name, "") for name in self.fields)
        else:
            parts = tuple(values)
        candidate = self.separator.join(parts)
        if len(parts) != len(self.fields) or any(
            not part or self.separator in part for part in parts
        ):
            raise MalformedIdentifierError(candidate, self.fields)
        return candidate

    def decode(self, identifier: str) -> tuple[str, ...]:
        """Split ``identifier`` back into its field values.

        Raises:
            MalformedIdentifierError: Unless the identifier holds exactly one
                non-empty value per field.
        """
        parts = tuple(identifier.split(self.separator))
        if len(parts) != len(self.fields) or not all(parts):
            raise MalformedIdentifierError(identifier, self.fields)
        return parts

    def decode_named(self, identifier: str) -> dict[str, str]:
        """Decode ``identifier`` into a field-name to value mapping."""
        return dict(zip(self.fields, self.decode(identifier), strict=True))


RELEASE_IDENTITY = CompositeIdentity(("cluster_name", "namespace", "release"))
