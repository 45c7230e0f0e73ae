"""
Tests of pycurry.rawio.curryrawio
"""

import os
import tempfile
import unittest

import numpy as np
from numpy.testing import assert_array_equal, assert_allclose

from pycurry.core import CurryReadError, Severity
from pycurry.rawio import get_rawio
from pycurry.rawio.baserawio import BOUNDARY
from pycurry.rawio.curryrawio import CurryRawIO, SYNTHETIC_TRIGGER_LABEL, resolve_curry_files
from pycurry.rawio.paramtext import COMPRESSED_DATA_GUID
from pycurry.test.rawiotest.tools import write_curry_recording, write_text


def make_continuous_data(nb_sample=1000):
    """Fp1, Fp2 and a trigger channel holding 7 on samples 100-102 and 9 on sample 500"""
    data = np.zeros((3, nb_sample), dtype="float32")
    data[0] = np.sin(np.arange(nb_sample) / 10.0)
    data[1] = np.arange(nb_sample) * 0.5
    data[2, 100:103] = 7
    data[2, 500] = 9
    return data


class TestResolveCurryFiles(unittest.TestCase):
    def test_cdt(self):
        files = resolve_curry_files("/data/rec.cdt")
        self.assertEqual(files["data"], "/data/rec.cdt")
        self.assertEqual(files["parameters"], ["/data/rec.cdt.dpa", "/data/rec.cdt.dpo"])
        self.assertIsNone(files["labels"])
        self.assertEqual(files["events"], ["/data/rec.cdt.cef", "/data/rec.cdt.ceo"])

    def test_dat(self):
        files = resolve_curry_files("/data/rec.dat")
        self.assertEqual(files["parameters"], ["/data/rec.dap"])
        self.assertEqual(files["labels"], "/data/rec.rs3")
        self.assertEqual(files["events"], ["/data/rec.cef", "/data/rec.ceo"])

    def test_companion_names(self):
        self.assertEqual(resolve_curry_files("/data/rec.cdt.dpa")["data"], "/data/rec.cdt")
        self.assertEqual(resolve_curry_files("/data/rec.cdt.cef")["data"], "/data/rec.cdt")
        self.assertEqual(resolve_curry_files("/data/rec.dap")["data"], "/data/rec.dat")
        self.assertEqual(resolve_curry_files("/data/rec.rs3")["data"], "/data/rec.dat")

    def test_unsupported(self):
        with self.assertRaises(CurryReadError):
            resolve_curry_files("/data/rec.vhdr")


class TestCurryRawIO(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.dirname = self._tmpdir.name

    def tearDown(self):
        self._tmpdir.cleanup()

    def write_continuous(self, **kargs):
        self.data = make_continuous_data()
        return write_curry_recording(
            self.dirname,
            self.data,
            sampling_rate=500.0,
            labels=["Fp1", "Fp2", "Trigger"],
            events=[(100, 7, 90, 110), (300, 4, 290, 310)],
            remarks=["first", "second"],
            **kargs,
        )

    def test_continuous_cdt(self):
        filename = self.write_continuous(impedances=np.arange(30) * 1000.0)
        reader = CurryRawIO(filename=filename)
        reader.parse_header()
        txt = reader.__repr__()
        self.assertIn("Fp1", txt)

        self.assertEqual(reader.block_count(), 1)
        self.assertEqual(reader.segment_count(0), 1)
        self.assertEqual(reader.signal_channels_count(0), 3)
        self.assertEqual(reader.get_signal_size(), 1000)
        self.assertEqual(reader.get_signal_sampling_rate(), 500.0)
        self.assertEqual(reader.segment_t_start(0, 0), 0.0)
        self.assertEqual(reader.segment_t_stop(0, 0), 2.0)

        raw = reader.get_analogsignal_chunk(i_start=0, i_stop=10)
        self.assertEqual(raw.shape, (10, 3))
        assert_array_equal(raw[:, 0], self.data[0, :10])
        raw = reader.get_analogsignal_chunk(channel_names=["Fp2"])
        assert_array_equal(raw[:, 0], self.data[1])

        record = reader.read_record()
        self.assertEqual(record.labels, ["Fp1", "Fp2", "Trigger"])
        self.assertEqual(record.n_samples, 1000)
        self.assertEqual(record.n_trials, 1)
        self.assertEqual(record.annotations, ["first", "second"])
        self.assertEqual(record.notices, [])

        # the held 7 duplicates the file event, the 9 only comes from the trigger channel
        assert_array_equal(record.events["sample"], [100, 300, 500])
        assert_array_equal(record.events["type"], ["7", "4", "9"])

        trigger = record.data[2]
        self.assertEqual(trigger[300], 4)
        self.assertEqual(trigger[500], 9)

        latest, median = record.impedance_summary()
        assert_allclose(latest, [0.0, 1.0, 2.0])
        assert_allclose(median, [13.5, 14.5, 15.5])
        seg_ann = reader.raw_annotations["blocks"][0]["segments"][0]
        assert_allclose(seg_ann["signals"][0]["__array_annotations__"]["impedance"], [0.0, 1.0, 2.0])

        timestamps, _, labels = reader.get_event_timestamps(t_start=0.5, t_stop=1.5)
        assert_array_equal(timestamps, [300, 500])
        assert_array_equal(labels, ["4", "9"])
        times = reader.rescale_event_timestamp(timestamps)
        assert_allclose(times, [0.6, 1.0])
        self.assertEqual(reader.event_count(), 3)

    def test_data_is_read_only(self):
        record = CurryRawIO(filename=self.write_continuous()).read_record()
        with self.assertRaises(ValueError):
            record.data[0, 0] = 1.0

    def test_drop_trigger_channel(self):
        filename = self.write_continuous()
        record = CurryRawIO(filename=filename, keep_trigger_channel=False).read_record()
        self.assertEqual(record.n_channels, 2)
        self.assertEqual(record.labels, ["Fp1", "Fp2"])
        assert_array_equal(record.events["type"], ["7", "4", "9"])

    def test_trigger_baseline(self):
        data = make_continuous_data()
        data[2] += 3
        filename = write_curry_recording(self.dirname, data, labels=["Fp1", "Fp2", "Trigger"])
        record = CurryRawIO(filename=filename).read_record()
        assert_array_equal(record.events["sample"], [100, 500])
        self.assertEqual(record.data[2, 0], 0)
        self.assertEqual(record.data[2, 500], 9)

    def test_collision_on_last_sample(self):
        data = np.zeros((2, 100), dtype="float32")
        data[1, 99] = 5
        filename = write_curry_recording(
            self.dirname, data, labels=["Fp1", "Trigger"], events=[(99, 4, 99, 99)]
        )
        record = CurryRawIO(filename=filename).read_record()
        assert_array_equal(record.events["sample"], [98, 99])
        assert_array_equal(record.events["type"], ["5", "4"])
        self.assertEqual(record.data[1, 98], 5)
        self.assertEqual(record.data[1, 99], 4)

    def test_continuous_offset(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), offset_usec=-100000.0)
        reader = CurryRawIO(filename=filename)
        reader.parse_header()
        assert_allclose(reader.segment_t_start(0, 0), -0.1)
        self.assertEqual(reader.read_record().trigger_offset_usec, -100000.0)

    def test_epoched(self):
        # 4 channels, 2 trials of 100 samples
        data = np.arange(4 * 200, dtype="float32").reshape(4, 200)
        filename = write_curry_recording(
            self.dirname,
            data,
            nb_trial=2,
            sampling_rate=100.0,
            epoch_info=[[1, 2, 1, 1, 0, 0, 0], [1, 2, 2, 1, 0, 0, 0]],
            epoch_labels=["left", "right"],
        )
        reader = CurryRawIO(filename=filename)
        record = reader.read_record()
        self.assertEqual(record.n_trials, 2)
        self.assertEqual(record.n_samples, 100)
        self.assertEqual(record.n_total_samples, 200)
        self.assertEqual(record.n_channels, 5)
        self.assertEqual(record.labels[-1], SYNTHETIC_TRIGGER_LABEL)
        assert_array_equal(record.data[:4], data)

        assert_array_equal(record.events["sample"], [0, 99, 100])
        assert_array_equal(record.events["type"], ["1", BOUNDARY, "2"])
        assert_array_equal(record.events["label"], ["left", "", "right"])
        assert_array_equal(record.epoch_info["type"], [1, 2])
        self.assertEqual(record.epoch_labels, ["left", "right"])

        trigger = record.data[4]
        self.assertEqual(trigger[0], 1)
        self.assertEqual(trigger[100], 2)
        self.assertEqual(np.count_nonzero(trigger), 2)

        self.assertEqual(reader.segment_t_start(0, 0), 0.0)
        self.assertEqual(reader.get_signal_size(), 200)

    def test_legacy_dat(self):
        data = make_continuous_data()
        sensors = [[1, 2, 3], [4, 5, 6], [0, 0, 0]]
        filename = write_curry_recording(
            self.dirname,
            data,
            legacy=True,
            labels=["Fp1", "Fp2", "Trigger"],
            sensors=sensors,
            events=[(100, 7, 90, 110)],
        )
        self.assertTrue(filename.endswith(".dat"))
        reader = CurryRawIO(filename=filename)
        record = reader.read_record()
        self.assertEqual(record.labels, ["Fp1", "Fp2", "Trigger"])
        assert_array_equal(record.sensor_locations, sensors)
        assert_array_equal(record.events["sample"], [100, 500])
        seg_ann = reader.raw_annotations["blocks"][0]["segments"][0]
        assert_array_equal(seg_ann["signals"][0]["__array_annotations__"]["coordinates_0"], [1, 4, 0])

    def test_missing_label_file_is_advisory(self):
        filename = write_curry_recording(
            self.dirname, make_continuous_data(), legacy=True, labels=["Fp1", "Fp2", "Trigger"], write_labels=False
        )
        record = CurryRawIO(filename=filename).read_record()
        self.assertEqual(record.labels, ["EEG1", "EEG2", "EEG3"])
        self.assertEqual(record.sensor_locations.shape, (0, 3))
        self.assertEqual(len(record.advisories), 1)
        self.assertIs(record.notices[0].severity, Severity.ADVISORY)
        # no trigger channel is recognized
        self.assertEqual(record.events.size, 0)

    def test_missing_parameter_file_is_fatal(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), write_parameters=False)
        reader = CurryRawIO(filename=filename)
        with self.assertRaises(CurryReadError) as cm:
            reader.parse_header()
        self.assertTrue(cm.exception.notice.is_fatal)

    def test_missing_data_file_is_fatal(self):
        filename = os.path.join(self.dirname, "missing.cdt")
        write_text(filename + ".dpa", "NumChannels = 3\n")
        with self.assertRaises(CurryReadError):
            CurryRawIO(filename=filename).parse_header()

    def test_compressed_is_fatal(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), data_guid=COMPRESSED_DATA_GUID)
        with self.assertRaises(CurryReadError):
            CurryRawIO(filename=filename).parse_header()

    def test_invalid_sampling_rate_is_fatal(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), sampling_rate=0)
        with self.assertRaises(CurryReadError):
            CurryRawIO(filename=filename).parse_header()

    def test_truncated_is_advisory(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), declared_nb_sample=1500)
        record = CurryRawIO(filename=filename).read_record()
        self.assertEqual(record.n_samples, 1000)
        self.assertEqual(len(record.advisories), 1)

    def test_inferred_sample_count(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), declared_nb_sample=-1)
        record = CurryRawIO(filename=filename).read_record()
        self.assertEqual(record.n_samples, 1000)
        self.assertEqual(record.notices, [])

    def test_absent_sample_count_is_fatal(self):
        filename = write_curry_recording(self.dirname, make_continuous_data(), declared_nb_sample=None)
        with self.assertRaises(CurryReadError) as cm:
            CurryRawIO(filename=filename).parse_header()
        self.assertIn("empty", str(cm.exception))

    def test_multiplex_ascii(self):
        data = make_continuous_data(nb_sample=50)
        filename = write_curry_recording(self.dirname, data, ascii=True, multiplex=True)
        record = CurryRawIO(filename=filename).read_record()
        assert_allclose(record.data[:2], data[:2], rtol=1e-5)

    def test_open_from_companion(self):
        filename = self.write_continuous()
        record = CurryRawIO(filename=filename + ".dpa").read_record()
        self.assertEqual(record.file_origin, filename)

    def test_get_rawio(self):
        self.assertIs(get_rawio("/data/rec.cdt"), CurryRawIO)
        self.assertIs(get_rawio("/data/rec.DAT"), CurryRawIO)
        self.assertIsNone(get_rawio("/data/rec.vhdr"))
        self.write_continuous()
        self.assertEqual(get_rawio(self.dirname, exclusive_rawio=False), [CurryRawIO])


if __name__ == "__main__":
    unittest.main()
