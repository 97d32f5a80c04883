"""4-line Feedback Delay Network: the reverb engine.

Signal flow:
    Stereo in -> [Mono downmix] -> [Pre lowpass] -> FDN Loop -> [Post lowpass]
              -> [Wet/Dry Mix] -> Stereo out

FDN Loop (per sample):
    1. Read the oldest sample of each of the 4 delay lines
    2. Sum the reads (weighted by out_decays), tonal-correct -> output sample
    3. Per-line one-pole damping of the reads
    4. Multiply by the Stautner-Puckette matrix (scaled by gain/sqrt(2))
    5. Add input (weighted by in_decays)
    6. Push into the delay lines

The damping filters are solved per line from the two 60 dB decay times
(decay_lo, decay_hi), so every line decays at the same rate whatever its
length.
Pushing decay_lo/decay_hi far from the defaults can ring or blow up; that is
reported with a StabilityAdvisory, not corrected.
"""

import logging
import time
import warnings
from numbers import Real

import numpy as np

from primitives.filters import lowpass1
from primitives.matrix import stautner_puckette
from reverb.engine.numba_fdn import FDNState, run_network
from reverb.engine.params import ReverbConfig
from shared.errors import InvalidSignal, ParameterOutOfRange, StabilityAdvisory
from shared.signal import safety_check, valid_signal

log = logging.getLogger(__name__)

# 60 dB of decay is a factor of 1000 = e^6.91
_LN_1000 = 6.91


# ---------------------------------------------------------------------------
# Coefficients
# ---------------------------------------------------------------------------

def feedback_matrix(gain: float = 1.0) -> np.ndarray:
    """Scattering matrix used in the loop."""
    return stautner_puckette(gain)


def damping_coefficients(delay_lengths, sampling_freq, decay_lo, decay_hi):
    """Per-line one-pole damping, y[n] = g*x[n] - p*y[n-1].

    Returns (g, p), each a 4-vector.
    """
    lengths = np.asarray(delay_lengths, dtype=np.float64)
    r_lo = 1.0 - (_LN_1000 / (sampling_freq * decay_lo)) * lengths
    r_hi = 1.0 - (_LN_1000 / (sampling_freq * decay_hi)) * lengths
    g = 2.0 * r_lo * r_hi / (r_lo + r_hi)
    p = (r_lo - r_hi) / (r_lo + r_hi)
    return g, p


def tonal_correction(decay_lo, decay_hi):
    """Constant of the one-zero tone corrector that undoes the damping tilt."""
    ratio = decay_hi / decay_lo
    return (1.0 - ratio) / (1.0 + ratio)


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------

def _check_sampling_freq(sampling_freq):
    if isinstance(sampling_freq, bool) or not isinstance(sampling_freq, Real) \
            or not sampling_freq > 0:
        raise ParameterOutOfRange(
            f"sampling_freq must be a positive number, got {sampling_freq!r}.")


def _check_stereo(signal):
    valid_signal(signal)
    if signal.ndim != 2 or signal.shape[1] != 2:
        raise InvalidSignal(
            f"reverb needs a stereo signal of shape (samples, 2), got {signal.shape}.")


def _resolve_config(config, options):
    if config is not None and options:
        raise ParameterOutOfRange("pass either a ReverbConfig or keyword options, not both.")
    if config is None:
        return ReverbConfig.from_params(options)
    if not isinstance(config, ReverbConfig):
        raise ParameterOutOfRange(f"config must be a ReverbConfig, got {type(config).__name__}.")
    return config


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_network(mono, sampling_freq, config, record_taps=False):
    """Run the feedback network over an already pre-filtered mono buffer.

    Returns the tonal-corrected network output (before the post lowpass).
    With record_taps=True returns (output, taps), where taps[n, i] is what
    line i read at sample n.
    """
    g, p = damping_coefficients(config.delay_lengths, sampling_freq,
                                config.decay_lo, config.decay_hi)
    tc = tonal_correction(config.decay_lo, config.decay_hi)
    log.debug("damping g=%s p=%s tonal=%.6f", np.round(g, 6), np.round(p, 6), tc)

    state = FDNState.allocate(config.delay_lengths)
    output, taps = run_network(
        mono, state, g, p, tc, feedback_matrix(config.gain),
        config.in_decays, config.out_decays, record_taps=record_taps,
    )
    if record_taps:
        return output, taps
    return output


def render_wet(signal, sampling_freq, config):
    """The 100% wet mono reverb signal for a stereo input."""
    mono = (signal[:, 0] + signal[:, 1]) / 2.0
    mono = lowpass1(config.pre_lowpass_cutoff, sampling_freq, mono)
    reverb = render_network(mono, sampling_freq, config)
    return lowpass1(config.post_lowpass_cutoff, sampling_freq, reverb)


def render_reverb(signal: np.ndarray, sampling_freq: float, wet_dry: float,
                  config: ReverbConfig | None = None, **options) -> np.ndarray:
    """The single entry point.

    Args:
        signal: float array, stereo (samples, 2)
        sampling_freq: sample rate in Hz
        wet_dry: 0.0 = all original, 1.0 = all reverb
        config: a ReverbConfig; or pass its fields as keyword options

    Returns:
        stereo output (samples, 2) = (wet_dry * reverb + (1 - wet_dry) * signal) / 2
    """
    _check_stereo(signal)
    _check_sampling_freq(sampling_freq)
    if isinstance(wet_dry, bool) or not isinstance(wet_dry, Real) or not 0 <= wet_dry <= 1:
        raise ParameterOutOfRange(f"wet_dry must be in [0, 1], got {wet_dry!r}.")
    config = _resolve_config(config, options)
    config.check_sample_rate(sampling_freq)

    if not config.is_default_decay:
        warnings.warn(
            f"decay_lo={config.decay_lo}, decay_hi={config.decay_hi}: changing the "
            "decay times can be glitchy (ringing or instability).",
            StabilityAdvisory, stacklevel=2)

    t0 = time.perf_counter()
    dry = signal.astype(np.float64)
    wet = render_wet(dry, sampling_freq, config)
    result = (wet_dry * np.column_stack([wet, wet]) + (1.0 - wet_dry) * dry) / 2.0

    ok, message = safety_check(result)
    if not ok:
        log.warning("reverb %s; check decay_lo/decay_hi and gain", message)

    elapsed = time.perf_counter() - t0
    duration = signal.shape[0] / sampling_freq
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %.1fs audio in %.3fs (numba, %.0fx RT)", duration, elapsed, rtf)
    return result
