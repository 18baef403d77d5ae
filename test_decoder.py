#!/usr/bin/env python3
"""
Unit Tests for pyModeS decoding and CPR position resolution

Dispatch tests mock pyModeS; the known-message tests at the bottom run
the real library on published sample frames.
"""

import unittest
from unittest.mock import Mock, patch

from flight_tracker.decoded_message import (
    AirbornePosition,
    AirborneVelocity,
    CPRFrame,
    Identification,
    Parity,
    SurveillanceIdentity,
    UnsupportedPayload,
    VerticalRateSource,
)
from flight_tracker.decoder import MessageDecoder, parse_avr, parse_binary
from flight_tracker.exceptions import DecodeError
from flight_tracker.position_calculator import resolve_position

# Test data - Known ADS-B message samples
TEST_MESSAGES = {
    'identification': {
        'message': '8D4840D6202CC371C32CE0576098',
        'icao': '4840D6',
        'callsign': 'KLM1023',
    },
    'position_even': {
        'message': '8D40621D58C382D690C8AC2863A7',
        'icao': '40621D',
        'timestamp': 1457996402,
        'lat_cpr': 93000,
        'lon_cpr': 51372,
    },
    'position_odd': {
        'message': '8D40621D58C386435CC412692AD6',
        'icao': '40621D',
        'timestamp': 1457996400,
        'lat_cpr': 74158,
        'lon_cpr': 50194,
    },
    'velocity': {
        'message': '8D485020994409940838175B284F',
        'icao': '485020',
        'ground_speed': 159,
        'heading': 182.88,
        'vertical_rate': -832,
    },
}


class TestParseAvr(unittest.TestCase):
    """Test cases for AVR line parsing"""

    def test_star_semicolon_frame(self):
        self.assertEqual(parse_avr("*8d4840d6202cc371c32ce0576098;\n"),
                         TEST_MESSAGES['identification']['message'])

    def test_bare_hex(self):
        self.assertEqual(parse_avr("8D4840D6202CC371C32CE0576098"),
                         TEST_MESSAGES['identification']['message'])

    def test_mlat_timestamp_prefix(self):
        self.assertEqual(parse_avr("@0123456789AB8D4840D6202CC371C32CE0576098;"),
                         TEST_MESSAGES['identification']['message'])

    def test_short_frame(self):
        self.assertEqual(parse_avr("*2A00516D492B80;"), "2A00516D492B80")

    def test_invalid_lines(self):
        for line in ("", "*;", "*ZZZZZZZZZZZZZZ;", "*8D4840D6;", "hello world"):
            with self.subTest(line=line):
                with self.assertRaises(DecodeError):
                    parse_avr(line)


class TestParseBinary(unittest.TestCase):
    """Test cases for binary frame conversion"""

    def test_long_frame(self):
        raw = bytes.fromhex(TEST_MESSAGES['velocity']['message'])
        self.assertEqual(parse_binary(raw), TEST_MESSAGES['velocity']['message'])

    def test_wrong_length(self):
        with self.assertRaises(DecodeError):
            parse_binary(b"\x8d\x48\x40")


class TestMessageDecoderDispatch(unittest.TestCase):
    """Test cases for MessageDecoder with pyModeS mocked"""

    def setUp(self):
        self.pymodes_patch = patch('flight_tracker.decoder.pms')
        self.pms = self.pymodes_patch.start()
        self.pms.df.return_value = 17
        self.pms.crc.return_value = 0
        self.decoder = MessageDecoder()

    def tearDown(self):
        self.pymodes_patch.stop()

    def test_identification(self):
        """Test TC 1-4 becomes Identification with padding removed"""
        self.pms.icao.return_value = '4840d6'
        self.pms.adsb.typecode.return_value = 4
        self.pms.adsb.callsign.return_value = 'KLM1023_'

        decoded = self.decoder.decode('*' + TEST_MESSAGES['identification']['message'] + ';', 10.0)

        self.assertEqual(decoded.icao, '4840D6')
        self.assertEqual(decoded.payload, Identification('KLM1023 '))
        self.assertEqual(decoded.timestamp, 10.0)
        self.assertTrue(decoded.is_tracked())

    def test_airborne_position(self):
        """Test TC 9-18 becomes AirbornePosition carrying a CPR frame"""
        data = TEST_MESSAGES['position_even']
        self.pms.icao.return_value = data['icao']
        self.pms.adsb.typecode.return_value = 11
        self.pms.adsb.altitude.return_value = 38000
        self.pms.adsb.oe_flag.return_value = 0

        decoded = self.decoder.decode(data['message'], 5.0)

        self.assertIsInstance(decoded.payload, AirbornePosition)
        self.assertEqual(decoded.payload.altitude, 38000)
        self.assertEqual(decoded.payload.frame, CPRFrame(
            parity=Parity.EVEN,
            message=data['message'],
            lat_cpr=data['lat_cpr'],
            lon_cpr=data['lon_cpr'],
            timestamp=5.0,
        ))

    def test_airborne_position_odd(self):
        """Test the odd/even flag selects the frame parity"""
        data = TEST_MESSAGES['position_odd']
        self.pms.icao.return_value = data['icao']
        self.pms.adsb.typecode.return_value = 11
        self.pms.adsb.altitude.return_value = 38000
        self.pms.adsb.oe_flag.return_value = 1

        decoded = self.decoder.decode(data['message'])

        self.assertEqual(decoded.payload.frame.parity, Parity.ODD)
        self.assertEqual(decoded.payload.frame.lat_cpr, data['lat_cpr'])
        self.assertEqual(decoded.payload.frame.lon_cpr, data['lon_cpr'])

    def test_velocity(self):
        """Test TC 19 becomes AirborneVelocity"""
        self.pms.icao.return_value = '485020'
        self.pms.adsb.typecode.return_value = 19
        self.pms.adsb.velocity.return_value = (159, 182.88, -832, 'GS', 'TRUE_NORTH', 'BARO')

        decoded = self.decoder.decode(TEST_MESSAGES['velocity']['message'])

        self.assertEqual(decoded.payload, AirborneVelocity(
            heading=182.88, ground_speed=159.0, vertical_rate=-832,
            vertical_rate_source=VerticalRateSource.BAROMETRIC,
        ))
        self.pms.adsb.velocity.assert_called_once_with(TEST_MESSAGES['velocity']['message'], source=True)

    def test_velocity_airspeed_subtype_has_no_ground_speed(self):
        """Test airspeed subtypes do not fill ground speed"""
        self.pms.icao.return_value = '485020'
        self.pms.adsb.typecode.return_value = 19
        self.pms.adsb.velocity.return_value = (375, 243.98, -2304, 'TAS', 'MAGNETIC_NORTH', 'GNSS')

        decoded = self.decoder.decode(TEST_MESSAGES['velocity']['message'])

        self.assertIsNone(decoded.payload.ground_speed)
        self.assertEqual(decoded.payload.heading, 243.98)
        self.assertEqual(decoded.payload.vertical_rate_source, VerticalRateSource.GNSS)

    def test_surveillance_identity(self):
        """Test DF5 becomes SurveillanceIdentity"""
        self.pms.df.return_value = 5
        self.pms.icao.return_value = '485020'
        self.pms.common.idcode.return_value = '0356'

        decoded = self.decoder.decode('*2A00516D492B80;')

        self.assertEqual(decoded.payload, SurveillanceIdentity('0356'))
        self.pms.crc.assert_not_called()

    def test_unsupported_type_code(self):
        """Test other ADS-B type codes are accepted as unsupported"""
        self.pms.icao.return_value = '4840D6'
        self.pms.adsb.typecode.return_value = 29

        decoded = self.decoder.decode(TEST_MESSAGES['identification']['message'])

        self.assertEqual(decoded.payload, UnsupportedPayload(df=17, tc=29))
        self.assertFalse(decoded.is_tracked())
        self.assertEqual(self.decoder.stats['unsupported_messages'], 1)

    def test_unsupported_downlink_format(self):
        """Test other downlink formats are accepted as unsupported"""
        self.pms.df.return_value = 11
        self.pms.icao.return_value = '4840D6'

        decoded = self.decoder.decode('*5D4840D6E1A4C2;')

        self.assertEqual(decoded.payload, UnsupportedPayload(df=11))

    def test_crc_failure(self):
        """Test a bad CRC raises DecodeError"""
        self.pms.crc.return_value = 1234

        with self.assertRaises(DecodeError):
            self.decoder.decode(TEST_MESSAGES['identification']['message'])

        self.assertEqual(self.decoder.stats['crc_failures'], 1)
        self.assertEqual(self.decoder.stats['decode_errors'], 1)

    def test_crc_validation_disabled(self):
        """Test CRC can be switched off"""
        decoder = MessageDecoder(crc_validation=False)
        self.pms.icao.return_value = '4840D6'
        self.pms.adsb.typecode.return_value = 4
        self.pms.adsb.callsign.return_value = 'KLM1023_'

        decoder.decode(TEST_MESSAGES['identification']['message'])

        self.pms.crc.assert_not_called()

    def test_short_extended_squitter(self):
        """Test a 56 bit frame claiming DF17 is rejected"""
        with self.assertRaises(DecodeError):
            self.decoder.decode('*8D4840D6202CC3;')

    def test_pymodes_exception_becomes_decode_error(self):
        """Test library failures surface as DecodeError"""
        self.pms.icao.return_value = '485020'
        self.pms.adsb.typecode.return_value = 19
        self.pms.adsb.velocity.side_effect = RuntimeError("unsupported subtype")

        with self.assertRaises(DecodeError) as context:
            self.decoder.decode(TEST_MESSAGES['velocity']['message'])

        self.assertIsInstance(context.exception.__cause__, RuntimeError)

    def test_statistics(self):
        """Test decoded and failed units are counted"""
        self.pms.icao.return_value = '4840D6'
        self.pms.adsb.typecode.return_value = 4
        self.pms.adsb.callsign.return_value = 'KLM1023_'

        self.decoder.decode(TEST_MESSAGES['identification']['message'])
        with self.assertRaises(DecodeError):
            self.decoder.decode('garbage')

        stats = self.decoder.get_statistics()
        self.assertEqual(stats['messages_decoded'], 1)
        self.assertEqual(stats['decode_errors'], 1)


class TestResolvePosition(unittest.TestCase):
    """Test cases for resolve_position with pyModeS mocked"""

    def setUp(self):
        self.even = CPRFrame(Parity.EVEN, 'EVEN', 93000, 51372, 2.0)
        self.odd = CPRFrame(Parity.ODD, 'ODD', 74158, 50194, 1.0)

    @patch('flight_tracker.position_calculator.pms')
    def test_passes_messages_and_timestamps(self, pms):
        pms.adsb.airborne_position.return_value = (52.2572, 3.91937)

        self.assertEqual(resolve_position(self.even, self.odd), (52.2572, 3.91937))
        pms.adsb.airborne_position.assert_called_once_with('EVEN', 'ODD', 2.0, 1.0)

    @patch('flight_tracker.position_calculator.pms')
    def test_unresolvable_pair(self, pms):
        pms.adsb.airborne_position.return_value = None
        self.assertIsNone(resolve_position(self.even, self.odd))

    @patch('flight_tracker.position_calculator.pms')
    def test_library_error_is_unresolvable(self, pms):
        pms.adsb.airborne_position.side_effect = RuntimeError("Both even and odd CPR frames are required.")
        self.assertIsNone(resolve_position(self.even, self.odd))

    def test_parities_must_match_arguments(self):
        with self.assertRaises(ValueError):
            resolve_position(self.odd, self.even)


class TestKnownMessages(unittest.TestCase):
    """End-to-end decoding of published sample frames with real pyModeS"""

    def setUp(self):
        self.decoder = MessageDecoder()

    def test_identification(self):
        data = TEST_MESSAGES['identification']
        decoded = self.decoder.decode('*' + data['message'] + ';')

        self.assertEqual(decoded.icao, data['icao'])
        self.assertIsInstance(decoded.payload, Identification)
        self.assertEqual(decoded.payload.callsign.strip(), data['callsign'])

    def test_corrupted_message_fails_crc(self):
        corrupted = TEST_MESSAGES['identification']['message'][:-1] + '9'
        with self.assertRaises(DecodeError):
            self.decoder.decode(corrupted)

    def test_position_pair(self):
        even_data = TEST_MESSAGES['position_even']
        odd_data = TEST_MESSAGES['position_odd']
        even = self.decoder.decode(even_data['message'], even_data['timestamp'])
        odd = self.decoder.decode(odd_data['message'], odd_data['timestamp'])

        self.assertEqual(even.icao, even_data['icao'])
        self.assertEqual(even.payload.altitude, 38000)
        self.assertEqual(even.payload.frame.parity, Parity.EVEN)
        self.assertEqual(odd.payload.frame.parity, Parity.ODD)

        lat, lon = resolve_position(even.payload.frame, odd.payload.frame)
        self.assertAlmostEqual(lat, 52.2572, places=3)
        self.assertAlmostEqual(lon, 3.9194, places=3)

    def test_velocity(self):
        data = TEST_MESSAGES['velocity']
        decoded = self.decoder.decode(data['message'])

        self.assertEqual(decoded.icao, data['icao'])
        self.assertIsInstance(decoded.payload, AirborneVelocity)
        self.assertAlmostEqual(decoded.payload.ground_speed, data['ground_speed'], places=0)
        self.assertAlmostEqual(decoded.payload.heading, data['heading'], places=1)
        self.assertEqual(decoded.payload.vertical_rate, data['vertical_rate'])

    def test_binary_frame(self):
        data = TEST_MESSAGES['velocity']
        decoded = self.decoder.decode(bytes.fromhex(data['message']))

        self.assertEqual(decoded.icao, data['icao'])
        self.assertIsInstance(decoded.payload, AirborneVelocity)


if __name__ == '__main__':
    unittest.main()
