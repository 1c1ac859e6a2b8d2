from __future__ import annotations

from dataclasses import dataclass, field

from stratagem_vision.models.geometry import BoundingBox


@dataclass(frozen=True)
class MatchWeights:
    """Tie-break weight vector. Must sum to 1.0."""
    iou: float = 0.40
    color: float = 0.05
    hash: float = 0.15
    embedding: float = 0.40

    def __post_init__(self) -> None:
        total = self.iou + self.color + self.hash + self.embedding
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Match weights must sum to 1.0, got {total:.4f}")

    def combine(self, iou: float, color: float, hash_score: float, embedding: float) -> float:
        return (
            iou * self.iou
            + color * self.color
            + hash_score * self.hash
            + embedding * self.embedding
        )

    @classmethod
    def from_dict(cls, data: dict) -> MatchWeights:
        default = cls()
        return cls(
            iou=float(data.get("iou", default.iou)),
            color=float(data.get("color", default.color)),
            hash=float(data.get("hash", default.hash)),
            embedding=float(data.get("embedding", default.embedding)),
        )

    def to_dict(self) -> dict:
        return {"iou": self.iou, "color": self.color, "hash": self.hash, "embedding": self.embedding}


@dataclass
class CaptureConfig:
    monitor_index: int = 1
    # Region scanned for the status text list (left edge of the screen)
    companion_region: BoundingBox = field(default_factory=BoundingBox)
    # Weapon icon region for reload detection; a negative top is measured
    # up from the bottom edge of the monitor
    reload_region: BoundingBox = field(
        default_factory=lambda: BoundingBox(top=-200, left=0, width=570, height=200)
    )


@dataclass
class AnchorConfig:
    landmark: str = "READY UP"
    # Landmark text must start inside this bottom fraction of the capture
    bottom_fraction: float = 0.30
    button_width_scale: float = 4.0
    button_height_scale: float = 2.2
    button_left_offset_scale: float = 1.7


@dataclass
class GridConfig:
    slot_count: int = 4
    # Button spans 5 icons + 4 gaps of 8% icon width
    button_width_icons: float = 5.32
    icon_scale: float = 0.80
    horizontal_gap: float = 0.06
    vertical_gap: float = 0.28
    start_inset: float = 0.04
    min_slot_size: float = 10.0


@dataclass
class MatcherConfig:
    tie_zone_width: float = 0.25
    # Calibrated for HogEmbedder distances; a learned embedding needs its own value
    max_embedding_distance: float = 4.0
    reference_content_threshold: int = 30
    tile_content_threshold: int = 60
    tile_mask_threshold: int = 80
    reference_mask_threshold: int = 100
    mask_size: int = 32
    iou_search_range: int = 3
    diagnostics_top_n: int = 5
    weights: MatchWeights = field(default_factory=MatchWeights)


@dataclass
class StatusConfig:
    min_name_similarity: float = 0.72
    scan_delay_s: float = 0.0
    # Seconds between status list scans; 0 scans once at startup
    scan_interval_s: float = 2.0


@dataclass
class CooldownConfig:
    tick_interval_s: float = 1.0


@dataclass
class ReloadConfig:
    enabled: bool = False
    red_ratio_threshold: float = 0.08
    scan_interval_s: float = 0.25
    announce_cooldown_s: float = 6.0


@dataclass
class EngineConfig:
    """Runtime configuration for the recognition engine."""
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    anchor: AnchorConfig = field(default_factory=AnchorConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    cooldown: CooldownConfig = field(default_factory=CooldownConfig)
    reload: ReloadConfig = field(default_factory=ReloadConfig)
    icons_dir: str = "assets/icons"
    stratagems_file: str = "assets/stratagems.json"

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        cap = data.get("capture", {})
        anc = data.get("anchor", {})
        grd = data.get("grid", {})
        mtc = data.get("matcher", {})
        sts = data.get("status", {})
        cdn = data.get("cooldown", {})
        rld = data.get("reload", {})
        default_reload_region = CaptureConfig().reload_region
        return cls(
            capture=CaptureConfig(
                monitor_index=cap.get("monitor_index", 1),
                companion_region=BoundingBox(**cap.get("companion_region", {})),
                reload_region=BoundingBox(
                    **cap.get("reload_region", default_reload_region.to_dict())
                ),
            ),
            anchor=AnchorConfig(
                landmark=anc.get("landmark", "READY UP"),
                bottom_fraction=anc.get("bottom_fraction", 0.30),
                button_width_scale=anc.get("button_width_scale", 4.0),
                button_height_scale=anc.get("button_height_scale", 2.2),
                button_left_offset_scale=anc.get("button_left_offset_scale", 1.7),
            ),
            grid=GridConfig(
                slot_count=grd.get("slot_count", 4),
                button_width_icons=grd.get("button_width_icons", 5.32),
                icon_scale=grd.get("icon_scale", 0.80),
                horizontal_gap=grd.get("horizontal_gap", 0.06),
                vertical_gap=grd.get("vertical_gap", 0.28),
                start_inset=grd.get("start_inset", 0.04),
                min_slot_size=grd.get("min_slot_size", 10.0),
            ),
            matcher=MatcherConfig(
                tie_zone_width=mtc.get("tie_zone_width", 0.25),
                max_embedding_distance=mtc.get("max_embedding_distance", 4.0),
                reference_content_threshold=mtc.get("reference_content_threshold", 30),
                tile_content_threshold=mtc.get("tile_content_threshold", 60),
                tile_mask_threshold=mtc.get("tile_mask_threshold", 80),
                reference_mask_threshold=mtc.get("reference_mask_threshold", 100),
                mask_size=mtc.get("mask_size", 32),
                iou_search_range=mtc.get("iou_search_range", 3),
                diagnostics_top_n=mtc.get("diagnostics_top_n", 5),
                weights=MatchWeights.from_dict(mtc.get("weights", {})),
            ),
            status=StatusConfig(
                min_name_similarity=sts.get("min_name_similarity", 0.72),
                scan_delay_s=sts.get("scan_delay_s", 0.0),
                scan_interval_s=sts.get("scan_interval_s", 2.0),
            ),
            cooldown=CooldownConfig(
                tick_interval_s=cdn.get("tick_interval_s", 1.0),
            ),
            reload=ReloadConfig(
                enabled=rld.get("enabled", False),
                red_ratio_threshold=rld.get("red_ratio_threshold", 0.08),
                scan_interval_s=rld.get("scan_interval_s", 0.25),
                announce_cooldown_s=rld.get("announce_cooldown_s", 6.0),
            ),
            icons_dir=data.get("icons_dir", "assets/icons"),
            stratagems_file=data.get("stratagems_file", "assets/stratagems.json"),
        )

    def to_dict(self) -> dict:
        """Serialize to dict for JSON config file (round-trip with from_dict)."""
        return {
            "capture": {
                "monitor_index": self.capture.monitor_index,
                "companion_region": self.capture.companion_region.to_dict(),
                "reload_region": self.capture.reload_region.to_dict(),
            },
            "anchor": {
                "landmark": self.anchor.landmark,
                "bottom_fraction": self.anchor.bottom_fraction,
                "button_width_scale": self.anchor.button_width_scale,
                "button_height_scale": self.anchor.button_height_scale,
                "button_left_offset_scale": self.anchor.button_left_offset_scale,
            },
            "grid": {
                "slot_count": self.grid.slot_count,
                "button_width_icons": self.grid.button_width_icons,
                "icon_scale": self.grid.icon_scale,
                "horizontal_gap": self.grid.horizontal_gap,
                "vertical_gap": self.grid.vertical_gap,
                "start_inset": self.grid.start_inset,
                "min_slot_size": self.grid.min_slot_size,
            },
            "matcher": {
                "tie_zone_width": self.matcher.tie_zone_width,
                "max_embedding_distance": self.matcher.max_embedding_distance,
                "reference_content_threshold": self.matcher.reference_content_threshold,
                "tile_content_threshold": self.matcher.tile_content_threshold,
                "tile_mask_threshold": self.matcher.tile_mask_threshold,
                "reference_mask_threshold": self.matcher.reference_mask_threshold,
                "mask_size": self.matcher.mask_size,
                "iou_search_range": self.matcher.iou_search_range,
                "diagnostics_top_n": self.matcher.diagnostics_top_n,
                "weights": self.matcher.weights.to_dict(),
            },
            "status": {
                "min_name_similarity": self.status.min_name_similarity,
                "scan_delay_s": self.status.scan_delay_s,
                "scan_interval_s": self.status.scan_interval_s,
            },
            "cooldown": {"tick_interval_s": self.cooldown.tick_interval_s},
            "reload": {
                "enabled": self.reload.enabled,
                "red_ratio_threshold": self.reload.red_ratio_threshold,
                "scan_interval_s": self.reload.scan_interval_s,
                "announce_cooldown_s": self.reload.announce_cooldown_s,
            },
            "icons_dir": self.icons_dir,
            "stratagems_file": self.stratagems_file,
        }
