"""
Test Suite for the XML Token Decoder and Encoder

Test Categories:
1. Decoding names, namespace declarations, text and passthrough tokens
2. Encoding, escaping and self-closing elements
3. Round trips of unchanged parts
4. Error reporting
"""

import io
import unittest

from docfill.core.error_handler import DecodeError, EncodeError
from docfill.core.models import Attr, CharData, EndElement, Name, Other, StartElement
from docfill.utils.namespace_utils import fix_ns
from docfill.utils.xml_tokens import TokenDecoder, TokenEncoder

from tests.docx_fixtures import BOLD, document_xml, paragraph, text_run


def decode(data: bytes, chunk_size: int = 65536):
    return list(TokenDecoder(io.BytesIO(data), chunk_size=chunk_size))


def round_trip(data: bytes, chunk_size: int = 65536) -> bytes:
    output = io.BytesIO()
    encoder = TokenEncoder(output)
    for token in TokenDecoder(io.BytesIO(data), chunk_size=chunk_size):
        encoder.encode_token(fix_ns(token))
    encoder.flush()
    return output.getvalue()


class TestTokenDecoder(unittest.TestCase):
    """Test cases for TokenDecoder."""

    def test_decodes_prefixed_names(self):
        data = (
            b'<?xml version="1.0" encoding="UTF-8"?>'
            b'<w:p xmlns:w="urn:w"><w:t xml:space="preserve"> a &amp; b </w:t></w:p>'
        )
        self.assertEqual(decode(data), [
            Other(b'<?xml version="1.0" encoding="UTF-8"?>'),
            StartElement(Name("w", "p"), [Attr(Name("xmlns", "w"), "urn:w")]),
            StartElement(Name("w", "t"), [Attr(Name("xml", "space"), "preserve")]),
            CharData(" a & b "),
            EndElement(Name("w", "t")),
            EndElement(Name("w", "p")),
        ])

    def test_default_namespace_stays_unprefixed(self):
        data = b'<Types xmlns="urn:ct"><Default Extension="xml"/></Types>'
        self.assertEqual(decode(data), [
            StartElement(Name("", "Types"), [Attr(Name("", "xmlns"), "urn:ct")]),
            StartElement(Name("", "Default"), [Attr(Name("", "Extension"), "xml")]),
            EndElement(Name("", "Default")),
            EndElement(Name("", "Types")),
        ])

    def test_inner_redeclaration_wins(self):
        data = b'<a:x xmlns:a="urn:1"><b:y xmlns:b="urn:1"/><a:z/></a:x>'
        names = [token.name for token in decode(data) if isinstance(token, StartElement)]
        self.assertEqual(names, [Name("a", "x"), Name("b", "y"), Name("a", "z")])

    def test_prefix_used_by_document_is_kept(self):
        data = b'<r xmlns:a="urn:u" xmlns:b="urn:u"><a:x a:k="1" b:j="2"/><b:y/></r>'
        starts = [token for token in decode(data) if isinstance(token, StartElement)]
        self.assertEqual(starts[1], StartElement(
            Name("a", "x"), [Attr(Name("a", "k"), "1"), Attr(Name("b", "j"), "2")]
        ))
        self.assertEqual(starts[2].name, Name("b", "y"))

    def test_text_around_comments_keeps_position(self):
        data = b"<r>one<!--c-->two<e/>three</r>"
        self.assertEqual(decode(data), [
            StartElement(Name("", "r")),
            CharData("one"),
            Other(b"<!--c-->"),
            CharData("two"),
            StartElement(Name("", "e")),
            EndElement(Name("", "e")),
            CharData("three"),
            EndElement(Name("", "r")),
        ])

    def test_text_split_across_chunks_is_merged(self):
        text = "[simple] " + "filler " * 400
        data = f'<w:t xmlns:w="urn:w">{text}</w:t>'.encode("utf-8")
        texts = [token for token in decode(data, chunk_size=5) if isinstance(token, CharData)]
        self.assertEqual(texts, [CharData(text)])

    def test_comments_and_processing_instructions(self):
        data = b'<root><!-- note --><?mso-application progid="Word.Document"?></root>'
        others = [token for token in decode(data) if isinstance(token, Other)]
        self.assertEqual(others, [
            Other(b'<!-- note -->'),
            Other(b'<?mso-application progid="Word.Document"?>'),
        ])

    def test_malformed_xml_raises_decode_error(self):
        with self.assertRaises(DecodeError):
            decode(b'<w:p xmlns:w="urn:w"><w:t>open</w:p>')

    def test_empty_part_raises_decode_error(self):
        with self.assertRaises(DecodeError):
            decode(b'')

    def test_read_failure_raises_decode_error(self):
        class BrokenStream(io.RawIOBase):
            def readable(self):
                return True

            def read(self, size=-1):
                raise OSError("device gone")

        with self.assertRaises(DecodeError):
            list(TokenDecoder(BrokenStream()))


class TestTokenEncoder(unittest.TestCase):
    """Test cases for TokenEncoder."""

    def setUp(self):
        self.output = io.BytesIO()
        self.encoder = TokenEncoder(self.output)

    def encode(self, *tokens) -> bytes:
        for token in tokens:
            self.encoder.encode_token(token)
        self.encoder.flush()
        return self.output.getvalue()

    def test_empty_element_is_self_closing(self):
        data = self.encode(StartElement(Name("", "w:b")), EndElement(Name("", "w:b")))
        self.assertEqual(data, b'<w:b/>')

    def test_text_and_attribute_escaping(self):
        data = self.encode(
            StartElement(Name("", "w:t"), [Attr(Name("", "w:val"), 'say "hi" & <go>\n')]),
            CharData("a < b & c > d"),
            EndElement(Name("", "w:t")),
        )
        self.assertEqual(
            data,
            b'<w:t w:val="say &quot;hi&quot; &amp; &lt;go&gt;&#10;">a &lt; b &amp; c &gt; d</w:t>',
        )

    def test_other_payload_is_written_raw(self):
        self.assertEqual(self.encode(Other(b'<!--x-->')), b'<!--x-->')

    def test_prefixed_name_is_rejected(self):
        with self.assertRaises(EncodeError):
            self.encoder.encode_token(StartElement(Name("w", "t")))

    def test_mismatched_end_tag_is_rejected(self):
        self.encoder.encode_token(StartElement(Name("", "w:r")))
        with self.assertRaises(EncodeError):
            self.encoder.encode_token(EndElement(Name("", "w:t")))

    def test_control_character_is_rejected(self):
        with self.assertRaises(EncodeError):
            self.encoder.encode_token(CharData("bell\x07"))

    def test_bytes_written_counts_output(self):
        data = self.encode(StartElement(Name("", "a")), CharData("xyz"), EndElement(Name("", "a")))
        self.assertEqual(self.encoder.bytes_written, len(data))

    def test_write_failure_raises_encode_error(self):
        class ClosedSink(io.RawIOBase):
            def writable(self):
                return True

            def write(self, data):
                raise OSError("disk full")

        encoder = TokenEncoder(ClosedSink())
        encoder.encode_token(CharData("text"))
        with self.assertRaises(EncodeError):
            encoder.flush()


class TestRoundTrip(unittest.TestCase):
    """Unchanged parts must come back byte for byte."""

    def test_document_round_trip_is_identity(self):
        data = document_xml(
            paragraph(text_run("Plain text"), text_run("bold", BOLD)),
            paragraph('<w:r><w:t xml:space="preserve"> spaced </w:t></w:r>'),
        )
        self.assertEqual(round_trip(data), data)

    def test_round_trip_with_small_chunks(self):
        data = document_xml(paragraph(text_run("chunked " * 300)))
        self.assertEqual(round_trip(data, chunk_size=16), data)

    def test_aliased_prefixes_round_trip(self):
        data = b'<r xmlns:a="urn:u" xmlns:b="urn:u"><a:x a:k="1"/></r>'
        self.assertEqual(round_trip(data), data)

    def test_default_namespace_alias_round_trip(self):
        data = b'<r xmlns="urn:u" xmlns:a="urn:u"><x/><a:y/></r>'
        self.assertEqual(round_trip(data), data)


if __name__ == '__main__':
    unittest.main()
