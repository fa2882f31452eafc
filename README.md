# sensorsrv

`sensorsrv` samples five sensor channels and streams the readings over TCP to
one client at a time. The five channels are:
- a temperature RTD;
- two ADC inputs;
- the switches;
- the push buttons.

At start-up the server tries to open the measurement device, which is
`/dev/meascdd` unless you name another one. If the device opens, readings come
from it. If it does not open, a simulated backend supplies the readings:
- the temperature is a raw value close to 800;
- the two ADCs follow a sine wave and a cosine wave on a 12-bit scale;
- the switches and the buttons follow a counter.

The package has no third-party dependencies.

## Installing

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Running

```
sensorsrv [--port PORT] [--device PATH] [-v]
```

| Option            | Default        | Meaning                                     |
|-------------------|----------------|---------------------------------------------|
| `--port PORT`     | `50012`        | The TCP port to listen on                   |
| `--device PATH`   | `/dev/meascdd` | The node of the measurement device          |
| `-v`, `--verbose` | off            | Also log the rate table and each sample sent |

By default every channel is sampled at 300 Hz. Samples go into a shared ring
buffer that holds 2048 entries. When the buffer is full, each new sample drops
the oldest one.

Log messages go to standard error. The server keeps running until a client
sends `SHUTDOWN`. The command then exits with one of these statuses:
- `0` on a normal shutdown;
- `1` if the port cannot be bound;
- `130` if it is interrupted with Ctrl-C.

## Protocol

A client sends commands as text. Only the text before the first line break is
read.

| Command                   | Effect                                                                  |
|---------------------------|-------------------------------------------------------------------------|
| `START`                   | Replies `RATES\n` and the binary rate table, then streams samples       |
| `CONFIGURE <SENSOR> <HZ>` | Sets a channel's rate and replies `OK\n`; replies `ERR\n` on bad input  |
| `STOP`                    | Stops streaming and keeps the connection open                           |
| `DISCONNECT`              | Closes the client connection                                            |
| `SHUTDOWN`                | Closes the connection and stops the server                              |

The sensor names are `TEMP`, `ADC0`, `ADC1`, `SW` and `PB`. A rate of zero, or
an unknown name, gets the reply `ERR\n`. After a `CONFIGURE`, the channel's next
sample is due one new period after the command. The server logs any other
command as unknown and sends no reply.

The rate table holds five pairs of little-endian `uint32` values. Each pair is a
sensor id (0 to 4, in the order of the names above) and that sensor's rate in
Hz.

While the server is streaming, it sends samples in batches of up to 96. Each
sample is a 16-byte little-endian record:
- the sensor id as a `uint32`;
- the value as a `uint32`;
- the timestamp as a `uint64`, in microseconds since the server started.

## Using the pieces

You can also use the building blocks directly from Python:

```python
from sensorsrv.models import SensorId, SensorSample
from sensorsrv.ringbuffer import RingBuffer

buf = RingBuffer(2048)
buf.add(SensorSample(SensorId.TEMP, 805, 1000))
record = buf.pop().pack()          # 16 bytes
print(SensorSample.unpack(record))
```

| Module                 | What it provides                                                                                                                                                          |
|------------------------|---------------------------------------------------------------------------------------------------------------------------------------------------------------------------|
| `sensorsrv.models`     | `SensorId`, `SystemMode`, `SensorSample` (with `pack` and `unpack`) and `sensor_from_name`                                                                                |
| `sensorsrv.ringbuffer` | `RingBuffer`, with `add`, `pop`, `drain(limit)` and `len()`                                                                                                               |
| `sensorsrv.fakesensors`| `SimulatedBackend`, the simulated readings                                                                                                                                |
| `sensorsrv.device`     | `MonotonicClock`, and `MeasDevice`, the register interface to the device: RTD converter, ADC, switches and buttons. A reply that is too short raises `DeviceError`, and an SPI timeout raises `DeviceTimeoutError` |
| `sensorsrv.sampler`    | `SensorConfigTable`, the rate for each channel (`configure`, `rates`), and `SensorSampler` (`poll`, `run`)                                                                |
| `sensorsrv.network`    | `parse_command`, `encode_rates` and `SensorServer` (`serve`, `handle_client`)                                                                                             |
| `sensorsrv.app`        | `main`, the command-line entry point                                                                                                                                      |

## Limitations

- The server handles one client at a time. Other clients wait until the current
  one disconnects.
- The package includes no client program. Any TCP client that speaks the
  protocol above can connect.
- Samples are kept only in memory and are never stored on disk.