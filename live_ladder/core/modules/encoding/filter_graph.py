"""
Filter graph construction for multi-rendition encoding.

The single decoded video stream is split into one branch per resolution and
each branch is scaled independently. Labels are assigned in resolution order;
the command builder maps ``output_labels[i]`` to encoder instance ``i``, so the
order here decides which bitrate is paired with which scaled output.
"""

from dataclasses import dataclass
from typing import List, Sequence

from .resolution_profiles import ResolutionProfile, lookup_all

SOURCE_VIDEO = "[v:0]"


@dataclass(frozen=True)
class FilterGraph:
    """A -filter_complex description plus its ordered output labels."""
    description: str
    output_labels: List[str]
    profiles: List[ResolutionProfile]

    def __len__(self):
        return len(self.output_labels)


def branch_label(index: int) -> str:
    return f"[vtemp{index:03d}]"


def output_label(index: int) -> str:
    return f"[vout{index:03d}]"


def scale_clause(index: int, profile: ResolutionProfile) -> str:
    """Aspect-preserving scale of branch ``index`` into the profile's box."""
    return (
        f"{branch_label(index)}"
        f"scale=w={profile.width}:h={profile.height}"
        f":force_original_aspect_ratio=decrease:force_divisible_by=2"
        f"{output_label(index)}"
    )


def build_filter_graph(resolutions: Sequence[int]) -> FilterGraph:
    """
    Build the split/scale graph for an ordered list of resolutions.

    A split is emitted even for a single resolution so the graph always has
    the same shape.

    Raises:
        ValueError: if no resolutions are given
        UnknownResolutionError: if a resolution has no profile
    """
    if not resolutions:
        raise ValueError("At least one resolution is required")

    profiles = lookup_all(resolutions)
    count = len(profiles)

    split = f"{SOURCE_VIDEO}split={count}" + "".join(branch_label(i) for i in range(count))
    clauses = [scale_clause(i, profile) for i, profile in enumerate(profiles)]

    return FilterGraph(
        description=";".join([split] + clauses),
        output_labels=[output_label(i) for i in range(count)],
        profiles=profiles,
    )
