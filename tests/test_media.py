import struct

from swarm_forge.orchestration.media import (
    is_raw_pcm,
    parse_data_uri,
    pcm_sample_rate,
    to_data_uri,
    wrap_pcm_as_wav,
)


class TestWrapPcmAsWav:
    def test_header_fields(self):
        pcm = b"\x01\x02" * 480
        wav = wrap_pcm_as_wav(pcm)

        assert len(wav) == 44 + len(pcm)
        assert wav[0:4] == b"RIFF"
        assert struct.unpack("<I", wav[4:8])[0] == 36 + len(pcm)
        assert wav[8:16] == b"WAVEfmt "

        fmt_size, audio_format, channels, rate, byte_rate, block_align, bits = struct.unpack("<IHHIIHH", wav[16:36])
        assert (fmt_size, audio_format, channels, rate, bits) == (16, 1, 1, 24000, 16)
        assert byte_rate == 48000
        assert block_align == 2

        assert wav[36:40] == b"data"
        assert struct.unpack("<I", wav[40:44])[0] == len(pcm)
        assert wav[44:] == pcm

    def test_custom_rate(self):
        wav = wrap_pcm_as_wav(b"", sample_rate=16000)
        assert struct.unpack("<I", wav[24:28])[0] == 16000


class TestDataUris:
    def test_parse(self):
        assert parse_data_uri(to_data_uri(b"abc", "image/png")) == ("image/png", b"abc")

    def test_parse_with_params(self):
        assert parse_data_uri("data:audio/L16;rate=24000;base64,AAA=") == ("audio/L16", b"\x00\x00")

    def test_not_a_data_uri(self):
        assert parse_data_uri("https://example.com/video.mp4") is None


class TestPcmMime:
    def test_rate_from_mime(self):
        assert pcm_sample_rate("audio/L16;codec=pcm;rate=22050") == 22050
        assert pcm_sample_rate("audio/pcm") == 24000

    def test_raw_pcm_detection(self):
        assert is_raw_pcm("audio/L16;rate=24000")
        assert is_raw_pcm("audio/pcm")
        assert not is_raw_pcm("audio/wav")
