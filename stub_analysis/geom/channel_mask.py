# geom/channel_mask.py

import logging
import re
from collections import defaultdict

from stub_analysis.ana_constants import N_CHANNELS, N_STRIPS_PER_CBC, N_CBC_PER_COLUMN, MASK_HALF_WIDTH
from stub_analysis.event_model import Layer

LOGGER = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text):
    """C atoi(): leading integer prefix of text, 0 if there is none."""
    m = _LEADING_INT.match(text)
    return int(m.group(1)) if m else 0


def _is_comment(line):
    return line.startswith("#") or line.startswith("//")


class ChannelMask:
    """
    Masked strip positions per layer. Immutable once built.
    """

    def __init__(self, masked=None):
        masked = masked or {}
        self._masked = {layer: frozenset(masked.get(layer, ())) for layer in Layer}

    def for_layer(self, layer):
        return self._masked[layer]

    def is_empty(self):
        return not any(self._masked.values())

    def summary(self):
        lines = []
        for layer in Layer:
            chans = ",".join(str(c) for c in sorted(self._masked[layer]))
            lines.append(f"DET={layer.value}  Masked Channels>>{chans}")
        return "\n".join(lines)

    def __repr__(self):
        sizes = ", ".join(f"{layer.value}={len(self._masked[layer])}" for layer in Layer)
        return f"ChannelMask({sizes})"


def parse_mask_lines(lines):
    """
    Parse 'chipId:ch1,ch2,...' lines into {chipId: [raw channels]}.

    Lines starting with '#' or '//' and blank lines are skipped. Fields are
    read like C atoi, so non-numeric text becomes 0; such lines are reported
    but still used.

    Returns:
        dict[int, list[int]]: chip id -> masked raw channels, chip ids ascending
    """
    chip_channels = defaultdict(list)
    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if not line.strip() or _is_comment(line):
            continue

        tokens = [t for t in line.split(":") if t]
        if not tokens:
            LOGGER.warning("Mask line %d has no chip id, skipped: %r", lineno, line)
            continue
        chip_token = tokens[0]
        ch_tokens = [t for t in tokens[1].split(",") if t] if len(tokens) > 1 else []

        if not ch_tokens:
            LOGGER.warning("Mask line %d has no channel list: %r", lineno, line)
        if not _LEADING_INT.match(chip_token) or any(not _LEADING_INT.match(t) for t in ch_tokens):
            LOGGER.warning("Mask line %d has non-numeric fields, read as 0: %r", lineno, line)

        chip_id = _atoi(chip_token)
        chip_channels[chip_id].extend(_atoi(t) for t in ch_tokens)

    return dict(sorted(chip_channels.items()))


def hit_position(chip_id, raw_channel):
    """
    Fold a CBC raw channel onto the layer strip it reads.

    CBC channels alternate between the two sensors, so two raw channels share
    one strip index. Chips 8-15 are mounted mirrored.
    """
    ichan = raw_channel // 2
    if chip_id <= N_CBC_PER_COLUMN - 1:
        return N_STRIPS_PER_CBC * chip_id + ichan
    return N_CHANNELS - (N_STRIPS_PER_CBC * chip_id + ichan)


def masked_layer(raw_channel):
    # even CBC channels read det1, odd ones det0
    return Layer.DET1 if raw_channel % 2 == 0 else Layer.DET0


def build_channel_mask(chip_channels):
    """
    Expand {chipId: [raw channels]} into a ChannelMask.

    Each masked raw channel masks hitPos-2..hitPos+2 on the layer it reads.
    """
    masked = {layer: set() for layer in Layer}
    for chip_id, channels in chip_channels.items():
        for ch in channels:
            hitpos = hit_position(chip_id, ch)
            masked[masked_layer(ch)].update(
                range(hitpos - MASK_HALF_WIDTH, hitpos + MASK_HALF_WIDTH + 1)
            )
    return ChannelMask(masked)


def load_channel_mask(mask_file):
    """
    Read a channel mask file. An unreadable file gives an empty mask.

    Args:
        mask_file (str): path to the 'chipId:ch1,ch2,...' text file

    Returns:
        ChannelMask
    """
    if not mask_file:
        LOGGER.warning("Channel masking requested without a mask file; masking disabled")
        return ChannelMask()
    try:
        with open(mask_file, "r", encoding="utf-8") as fin:
            chip_channels = parse_mask_lines(fin)
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Channel mask file %s could not be opened (%s); masking disabled", mask_file, exc)
        return ChannelMask()

    for chip_id, channels in chip_channels.items():
        LOGGER.info("CBCid=%d  MaskedCh>>%s", chip_id, ",".join(str(c) for c in channels))

    mask = build_channel_mask(chip_channels)
    LOGGER.info("Masked Channels Unfolded>>\n%s", mask.summary())
    return mask
