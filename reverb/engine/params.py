"""Parameter schema for the four-line FDN reverb.

Defined declaratively using ParamDef. ReverbConfig is the typed, validated
form passed to the engine; build it directly, or from a params dict with
ReverbConfig.from_params.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from shared.errors import ParameterOutOfRange
from shared.params import ParamType as T, ParamDef, ParamSchema

N = 4  # number of delay lines

# Prime lengths so no two lines share a resonance.
DEFAULT_DELAY_LENGTHS = (887, 1279, 2089, 3167)
DEFAULT_DECAY_LO = 1.5
DEFAULT_DECAY_HI = 0.7

# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    # --- Per-line arrays (4 lines) ---
    ParamDef("delay_lengths", T.INT_ARRAY, section="delay_lines",
             default=DEFAULT_DELAY_LENGTHS, range=(1, None), array_size=N,
             unit="samples"),

    ParamDef("out_decays", T.FLOAT_ARRAY, section="delay_lines",
             default=(0.8,) * N, array_size=N),

    ParamDef("in_decays", T.FLOAT_ARRAY, section="delay_lines",
             default=(1.0,) * N, array_size=N),

    # --- Global ---
    ParamDef("gain", T.FLOAT, section="global",
             label="feedback gain", default=1.0,
             range=(0.0, 1.0), exclusive_min=True),

    # Time for DC / Nyquist content to decay by 60 dB.
    ParamDef("decay_lo", T.FLOAT, section="decay",
             default=DEFAULT_DECAY_LO, range=(0.0, None), exclusive_min=True,
             unit="s"),

    ParamDef("decay_hi", T.FLOAT, section="decay",
             default=DEFAULT_DECAY_HI, range=(0.0, None), exclusive_min=True,
             unit="s"),

    # --- Tone ---
    ParamDef("post_lowpass_cutoff", T.FLOAT, section="tone",
             default=10000.0, range=(0.0, None), exclusive_min=True, unit="Hz"),

    ParamDef("pre_lowpass_cutoff", T.FLOAT, section="tone",
             default=12000.0, range=(0.0, None), exclusive_min=True, unit="Hz"),
]

SCHEMA = ParamSchema(_PARAMS)

default_params = SCHEMA.default_params
PARAM_RANGES = SCHEMA.param_ranges()
PARAM_SECTIONS = SCHEMA.param_sections()


@dataclass(frozen=True)
class ReverbConfig:
    """Recognized reverb options, checked once at construction.

    Cutoffs are only checked against Nyquist in check_sample_rate, since the
    sample rate arrives with each render call.
    """

    gain: float = 1.0
    delay_lengths: tuple = DEFAULT_DELAY_LENGTHS
    out_decays: tuple = (0.8,) * N
    in_decays: tuple = (1.0,) * N
    decay_lo: float = DEFAULT_DECAY_LO
    decay_hi: float = DEFAULT_DECAY_HI
    post_lowpass_cutoff: float = 10000.0
    pre_lowpass_cutoff: float = 12000.0

    def __post_init__(self):
        for p in SCHEMA:
            object.__setattr__(self, p.key, SCHEMA.validate(p.key, getattr(self, p.key)))

    @classmethod
    def from_params(cls, params: dict) -> ReverbConfig:
        """Build from a (possibly partial) params dict. Unknown keys are errors."""
        unknown = set(params) - {p.key for p in SCHEMA}
        if unknown:
            raise ParameterOutOfRange(
                f"Unknown reverb option(s) {sorted(unknown)}. "
                f"Options: {[p.key for p in SCHEMA]}")
        return cls(**params)

    def to_params(self) -> dict:
        return {k: list(v) if isinstance(v, tuple) else v for k, v in asdict(self).items()}

    def check_sample_rate(self, sampling_freq: float):
        """Both lowpass cutoffs must sit below Nyquist."""
        nyquist = 0.5 * sampling_freq
        for key in ("post_lowpass_cutoff", "pre_lowpass_cutoff"):
            value = getattr(self, key)
            if not value < nyquist:
                raise ParameterOutOfRange(
                    f"'{key}' must be below Nyquist ({nyquist:g} Hz), got {value:g}.")

    @property
    def is_default_decay(self) -> bool:
        return self.decay_lo == DEFAULT_DECAY_LO and self.decay_hi == DEFAULT_DECAY_HI
