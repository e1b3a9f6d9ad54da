"""World generation configuration loading from TOML files."""

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class NoiseParameters(BaseModel, frozen=True):
    """Fractal noise parameters for the height field."""

    octaves: int = Field(default=6, ge=1, description="Number of octaves for fBm")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    persistence: float = Field(default=0.5, description="Amplitude multiplier per octave")
    frequency: float = Field(default=0.05, gt=0, description="Base frequency in 1/tiles")


class GenerationParameters(BaseModel, frozen=True):
    """Noise parameters plus the height thresholds that split tile kinds."""

    noise: NoiseParameters = Field(default_factory=NoiseParameters)
    sea_level: float = Field(default=0.3, description="Heights below this are sea")
    high_level: float = Field(default=0.6, description="Heights from this up are forest")

    @model_validator(mode="after")
    def _check_levels(self) -> "GenerationParameters":
        if self.sea_level >= self.high_level:
            raise ValueError(
                f"sea_level ({self.sea_level}) must be below high_level ({self.high_level})"
            )
        return self


class Biome(BaseModel, frozen=True):
    """A selectable world biome.

    The sheet fields are asset references owned by the renderer.
    """

    name: str
    generation_parameters: GenerationParameters = Field(
        default_factory=GenerationParameters
    )
    weight: int = Field(default=1, ge=0, description="Relative selection weight")
    sea_sheet: str = ""
    land_sheet: str = ""


DEFAULT_BIOMES: tuple[Biome, ...] = (
    Biome(
        name="tropical",
        generation_parameters=GenerationParameters(
            noise=NoiseParameters(octaves=6, lacunarity=2.0, persistence=0.5, frequency=0.04),
            sea_level=0.3,
            high_level=0.5,
        ),
        weight=3,
        sea_sheet="sprites/sea/tropical_sea.png",
        land_sheet="sprites/sea/tropical_land.png",
    ),
    Biome(
        name="archipelago",
        generation_parameters=GenerationParameters(
            noise=NoiseParameters(octaves=4, lacunarity=2.2, persistence=0.45, frequency=0.07),
            sea_level=0.35,
            high_level=0.55,
        ),
        weight=2,
        sea_sheet="sprites/sea/archipelago_sea.png",
        land_sheet="sprites/sea/archipelago_land.png",
    ),
)


class StreamingConfig(BaseModel):
    """Ribbon window parameters."""

    view_distance: int = Field(default=50, ge=1, description="Generation radius in tiles")
    reset_factor: int = Field(
        default=2, ge=1, description="Columns drifting beyond reset_factor * view_distance reset"
    )
    max_island_tiles: int = Field(
        default=250_000, ge=1, description="Flood fills larger than this fail"
    )


class CollisionConfig(BaseModel):
    """Scale of the collision meshes handed to the physics engine."""

    tile_size: int = Field(default=16, gt=0, description="Sprite size in pixels")
    island_scaling: float = Field(default=2.0, gt=0, description="Island render scaling")

    @property
    def tile_world_size(self) -> float:
        """World units covered by one tile."""
        return self.tile_size * self.island_scaling


class PoolConfig(BaseModel):
    """Background generation worker pool."""

    max_workers: int = Field(default=4, ge=0, description="0 generates synchronously")
    max_pending: int = Field(default=16, ge=1, description="Maximum jobs in flight")
    max_retries: int = Field(default=2, ge=0, description="Retries per failed seed tile")


class WorldGenConfig(BaseModel):
    """Complete configuration for island world generation."""

    seed: str | int = "pirates"
    biomes: list[Biome] = Field(default_factory=lambda: list(DEFAULT_BIOMES))
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)
    collision: CollisionConfig = Field(default_factory=CollisionConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    validate_islands: bool = False


def load_config(config_path: Path) -> WorldGenConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed WorldGenConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        pydantic.ValidationError: If values are out of range.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return WorldGenConfig.model_validate(data)


def _configs_dir() -> Path:
    return Path(__file__).parent.parent.parent / "configs"


def find_config(name: str) -> Path:
    """Find a config file by name.

    Searches in the following order:
    1. Exact path if name contains path separator
    2. configs/{name}.toml
    3. configs/{name}

    Args:
        name: Config name or path.

    Returns:
        Path to the config file.

    Raises:
        FileNotFoundError: If config file is not found.
    """
    if "/" in name or name.endswith(".toml"):
        path = Path(name)
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {name}")

    configs_dir = _configs_dir()

    config_path = configs_dir / f"{name}.toml"
    if config_path.exists():
        return config_path

    config_path = configs_dir / name
    if config_path.exists():
        return config_path

    raise FileNotFoundError(
        f"Config '{name}' not found in {configs_dir}. "
        f"Available configs: {list_configs()}"
    )


def list_configs() -> list[str]:
    """List available config names."""
    configs_dir = _configs_dir()
    if not configs_dir.exists():
        return []
    return sorted(p.stem for p in configs_dir.glob("*.toml"))
