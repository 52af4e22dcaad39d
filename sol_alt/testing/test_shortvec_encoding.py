import unittest

from solana.utils import shortvec_encoding as solana_shortvec

from ..common_sol import shortvec_encoding as shortvec
from ..common_sol.errors import ShortVecError, MalformedDataError


class TestShortVecEncoding(unittest.TestCase):
    def test_encode_length(self):
        self.assertEqual(shortvec.encode_length(0), b'\x00')
        self.assertEqual(shortvec.encode_length(5), b'\x05')
        self.assertEqual(shortvec.encode_length(127), b'\x7f')
        self.assertEqual(shortvec.encode_length(128), b'\x80\x01')
        self.assertEqual(shortvec.encode_length(255), b'\xff\x01')
        self.assertEqual(shortvec.encode_length(16383), b'\xff\x7f')
        self.assertEqual(shortvec.encode_length(16384), b'\x80\x80\x01')
        self.assertEqual(shortvec.encode_length(65535), b'\xff\xff\x03')

    def test_same_as_solana_encoding(self):
        for value in (0, 127, 128, 16384, 65535):
            data = solana_shortvec.encode_length(value)
            self.assertEqual(shortvec.encode_length(value), data)
            self.assertEqual(shortvec.decode_length(data), solana_shortvec.decode_length(data))

    def test_encode_out_of_range(self):
        with self.assertRaises(ShortVecError):
            shortvec.encode_length(-1)
        with self.assertRaises(ShortVecError):
            shortvec.encode_length(65536)

    def test_decode_length(self):
        for value in (0, 1, 127, 128, 300, 16383, 16384, 65535):
            data = shortvec.encode_length(value)
            self.assertEqual(shortvec.decode_length(data), (value, len(data)))

    def test_decode_ignores_trailing_bytes(self):
        self.assertEqual(shortvec.decode_length(b'\x80\x01\xff\xff'), (128, 2))
        self.assertEqual(shortvec.decode_length(b'\x03\x80'), (3, 1))

    def test_decode_with_offset(self):
        self.assertEqual(shortvec.decode_length(b'\xaa\xbb\x80\x01', 2), (128, 2))

    def test_decode_truncated(self):
        with self.assertRaises(ShortVecError):
            shortvec.decode_length(b'')
        with self.assertRaises(ShortVecError):
            shortvec.decode_length(b'\x80')
        with self.assertRaises(MalformedDataError):
            shortvec.decode_length(b'\xff\xff')

    def test_decode_malformed(self):
        # more than 3 bytes
        with self.assertRaises(ShortVecError):
            shortvec.decode_length(b'\x80\x80\x80\x01')
        # non-canonical
        with self.assertRaises(ShortVecError):
            shortvec.decode_length(b'\x80\x00')
        # overflow of u16
        with self.assertRaises(ShortVecError):
            shortvec.decode_length(b'\xff\xff\x04')


if __name__ == '__main__':
    unittest.main()
