# gpsreceiver

Building blocks for a software GPS L1 C/A receiver. Each receiver stage is a
plain Python object built on `gpsreceiver.blockbase.Block`. Blocks send
`(key, value)` messages to each other through named output ports. Sample
streams are passed to a block's `work` method chunk by chunk. You can wire a
receiver chain together and drive it by hand or from tests.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

The only runtime dependency is numpy.

## Modules

Signal and bit helpers:

- `gpsreceiver.ca_code`: C/A code generation. It provides `generate_ca` (PRN 1–32 and SBAS 120–138, as +1/-1 chips), `make_ca_table`, `make_complex_ca_table`, `make_complex_ca_vector` and `make_padded_ca_table`.
- `gpsreceiver.dsp`: small numeric helpers. These are `fast_sin`, `calc_loop_coef`, `linspace`, `convolve`, `custom_fft`, `custom_ifft` and `get_pseudo_ranges`.
- `gpsreceiver.bits`: navigation bit handling. It provides `parity_check`, `bin2dec`, `twos_comp2dec` and `vec_selector` (1-based, inclusive ranges). It also provides `find_subframe_start`, which returns `(start index, time of week)` or `(0, 0)`.
- `gpsreceiver.search`: parallel code phase search over ±12 kHz of Doppler in 250 Hz steps, through `do_parallel_code_phase_search`. It also provides `perform_acquisition` (adds carrier frequency refinement) and `check_if_channel_present`. Both return an `AcqResults`.
- `gpsreceiver.acq_results.AcqResults`: a dataclass holding `prn`, `carr_freq`, `code_phase`, `peak_metric` and `channel_number`.

Navigation:

- `gpsreceiver.ephemeris.Ephemeris`: a dataclass of clock and orbit parameters.
  - `Ephemeris.from_nav_bits(bits, channel)` decodes 1501 bits (0/1): the D30 bit, then five 300-bit subframes.
  - `describe()` lists every parameter, one per line.
- `gpsreceiver.sat_position.SatPosition`: ECEF position and clock correction of a satellite. `SatPosition.from_ephemeris(transmit_time, eph)` computes them from an ephemeris.
- `gpsreceiver.geo`: geodesy and positioning.
  - `least_square_pos` returns the position, clock bias, elevations, azimuths and DOPs.
  - Coordinate and correction helpers: `cart2geo`, `togeod`, `topocent`, `tropo`, `e_r_corr` and `check_t`.
  - `find_utm_zone` raises `ValueError` outside its valid range.

Receiver blocks:

- `gpsreceiver.acquisition.Acquisition`: a cold start over all PRNs not yet assigned to a channel.
  - `handle_data_vector(prn, samples)` runs the search.
  - It publishes `"acq_result"` (and `"acq_restart"` on failure) on its `acquisition` port.
- `gpsreceiver.channel_starter.ChannelStarter`: acquires the PRN a channel asks for.
  - It allows a limited number of failed attempts.
  - It publishes `"acq_start"` or `"acq_restart"` on its `acquisition` port.
- `gpsreceiver.tracking.Tracking`: DLL/PLL tracking of one channel.
  - `work(samples)` returns one float per sample. An item is non-zero once per millisecond while the channel passes its quality check.
  - When it needs (re)acquisition it publishes an 11 ms snapshot on `data_vector` as `(prn, samples)`.
  - `handle_acquisition(key, result)` reacts to acquisition messages.
- `gpsreceiver.decimator.Decimator`: reduces tracking output to one +1/-1 value per millisecond, tagged with the sample position.
- `gpsreceiver.nav_decoding.NavDecoder`: finds a subframe start in tagged 1 kHz bits and publishes 1501 navigation bits on `nav_bits` as `(channel, bits)`.
- `gpsreceiver.ephemerides.EphemeridesDecoder`: `handle_nav_bits(channel, bits)` decodes and publishes an `Ephemeris` on `ephemeris`.
- `gpsreceiver.nav_solution.NavSolution`: aligns several channels on a common subframe.
  - `work(inputs, tags)` computes a fix once at least four channels have an ephemeris and a receive time.
  - Each fix is appended to `fixes` as `(latitude, longitude, height, time_of_week)`.

Progress messages go to the standard `logging` module under the module names.

## Examples

```python
from gpsreceiver.ca_code import generate_ca
from gpsreceiver.bits import bin2dec

code = generate_ca(1)
print(len(code))              # 1023
print(bin2dec([1, 0, 1, 1]))  # 11
```

Blocks talk through ports:

```python
from gpsreceiver.blockbase import Block

block = Block("demo", out_ports=("out",))
block.subscribe("out", lambda key, value: print(key, value))
block.publish("out", "hello", 42)   # prints: hello 42
```

Wiring a tracking channel to its starter:

```python
from gpsreceiver.channel_starter import ChannelStarter
from gpsreceiver.tracking import Tracking

fs = 4.092e6
tracking = Tracking(0, fs, pll_nbw=25, dll_nbw=2)
starter = ChannelStarter(fs, im_freq=0.0, attempts=3)

tracking.subscribe("data_vector", starter.handle_data_vector)
starter.subscribe("acquisition", tracking.handle_acquisition)
```

## What this package does not do

- There is no scheduler that moves samples between blocks. You call each block's `work` and pass its output and tags on yourself.
- There is no block that buffers the incoming sample stream and hands snapshots to `Acquisition` on request. Cold-start data must be given to `Acquisition.handle_data_vector` directly.
- The package reads no sample files, talks to no radio hardware and has no command-line program.