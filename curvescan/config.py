from dataclasses import dataclass, replace as _replace

# Okabe-Ito palette, cycled for overlay plots without an explicit color
OVERLAY_COLORS = (
    "#0072B2",
    "#D55E00",
    "#009E73",
    "#CC79A7",
    "#E69F00",
    "#56B4E9",
    "#F0E442",
    "#000000",
)

ZERO_REFINEMENTS = ("newton", "brentq")


@dataclass(frozen=True)
class ScanConfig:
    """Domain window, step sizes and thresholds shared by every scan."""

    x_min: float = -10.0
    x_max: float = 10.0
    epsilon: float = 0.001
    max_length: int = 200

    zero_step: float = 0.1
    zero_separation: float = 0.5
    newton_iterations: int = 20
    newton_min_slope: float = 0.001
    zero_tolerance: float = 0.0001
    exact_zero_check: bool = False
    zero_refinement: str = "newton"

    feature_step: float = 0.2
    critical_slope: float = 0.05
    curvature_threshold: float = 0.1
    feature_separation: float = 1.0

    def __post_init__(self):
        if not self.x_min < self.x_max:
            raise ValueError(f"x_min must be below x_max (got {self.x_min}, {self.x_max}).")
        for name in ("epsilon", "zero_step", "feature_step"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive.")
        if self.zero_refinement not in ZERO_REFINEMENTS:
            raise ValueError(f"zero_refinement must be one of {', '.join(ZERO_REFINEMENTS)}.")

    def replace(self, **changes) -> "ScanConfig":
        return _replace(self, **changes)


DEFAULT_CONFIG = ScanConfig()
