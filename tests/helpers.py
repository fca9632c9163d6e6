import os

from cerbero.config import TEMP_DIR_NAME

# Header names may not contain spaces, so the multipart parser rejects this body
MALFORMED_BODY = b"--x\r\nbad header: value\r\n\r\ndata\r\n--x--\r\n"
MALFORMED_TYPE = "multipart/form-data; boundary=x"


def build_multipart(fields, files, boundary="cerberotestboundary"):
    """Encode a multipart/form-data body by hand, for requests httpx would not build."""
    lines = []
    for name, value in fields.items():
        lines.append(f"--{boundary}\r\n".encode())
        lines.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
        lines.append(value.encode() + b"\r\n")
    for name, (filename, content) in files.items():
        lines.append(f"--{boundary}\r\n".encode())
        lines.append(f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode())
        lines.append(b"Content-Type: application/octet-stream\r\n\r\n")
        lines.append(content + b"\r\n")
    lines.append(f"--{boundary}--\r\n".encode())
    return b"".join(lines), f"multipart/form-data; boundary={boundary}"


def write_file(root, name, content=b"data", mtime=None):
    path = root / name
    path.write_bytes(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def shared_files(root):
    """Names visible in the shared root, leaving out the server's own temp directory."""
    return sorted(name for name in os.listdir(root) if name != TEMP_DIR_NAME)
