"""Helpers for inspecting multipart bodies in tests"""
import re
from typing import List, Tuple


def parse_form(body: bytes, content_type: str) -> List[Tuple[str, bytes]]:
    """Split a multipart/form-data body into (name, data) pairs, in order"""
    boundary = content_type.split("boundary=", 1)[1].encode()
    parts = body.split(b"--" + boundary)

    fields = []
    for part in parts[1:-1]:
        headers, _, data = part[2:].partition(b"\r\n\r\n")
        name = re.search(rb'name="([^"]*)"', headers).group(1).decode()
        fields.append((name, data[:-2]))
    return fields


def part_headers(body: bytes, content_type: str, name: str) -> bytes:
    boundary = content_type.split("boundary=", 1)[1].encode()
    for part in body.split(b"--" + boundary)[1:-1]:
        headers, _, _ = part[2:].partition(b"\r\n\r\n")
        if f'name="{name}"'.encode() in headers:
            return headers
    raise KeyError(name)
