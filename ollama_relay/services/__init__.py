"""Translation services: alias resolution, model listing, stream translation."""

__all__: list[str] = []
