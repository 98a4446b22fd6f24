"""
Tests for client-side image selection.
"""

from portfolio.client.files import LocalFile, validate_files


def test_mixed_selection():
    files = [
        LocalFile("a.png", "image/png", b"x" * 10),
        LocalFile("notes.pdf", "application/pdf", b"x" * 10),
        LocalFile("huge.jpg", "image/jpeg", b"x" * 101),
        LocalFile("b.webp", "image/webp", b"x" * 100),
    ]
    accepted, rejected = validate_files(files, max_bytes=100)
    assert [f.name for f in accepted] == ["a.png", "b.webp"]
    assert len(rejected) == 2
    assert rejected[0] == "notes.pdf is not an image"
    assert rejected[1].startswith("huge.jpg is larger than")


def test_default_cap_message():
    big = LocalFile("big.png", "image/png", b"\x00" * (10 * 1024 * 1024 + 1))
    accepted, rejected = validate_files([big])
    assert accepted == []
    assert rejected == ["big.png is larger than 10MB"]


def test_from_bytes_guesses_type():
    assert LocalFile.from_bytes("photo.jpg", b"").content_type == "image/jpeg"
    assert LocalFile.from_bytes("blob", b"").content_type == "application/octet-stream"
    assert LocalFile.from_bytes("x.bin", b"", "image/png").content_type == "image/png"


def test_five_megabyte_image_fits_default_cap():
    photo = LocalFile("photo.png", "image/png", b"\x00" * (5 * 1024 * 1024))
    accepted, rejected = validate_files([photo])
    assert accepted == [photo]
    assert rejected == []
