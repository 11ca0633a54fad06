"""
照片传输：逐张 HTTP GET 下载到临时文件，上传后无论成败都清理。
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import httpx

LogFn = Callable[[str, str], None]

MAX_PHOTOS = 10


def download_photos(
    urls: list[str],
    valuation_id: int,
    dest_dir: Path,
    *,
    max_photos: int = MAX_PHOTOS,
    timeout: float = 20.0,
    log_fn: Optional[LogFn] = None,
) -> list[Path]:
    """
    顺序下载前 max_photos 张照片。

    非 200 响应、非法 URL、网络或写盘异常只跳过当前照片，不影响其余照片。

    Returns:
        成功下载的本地文件路径列表（保持原顺序）
    """
    log = log_fn or (lambda msg, level="info": None)
    dest_dir.mkdir(parents=True, exist_ok=True)
    saved: list[Path] = []
    for index, url in enumerate(urls[:max_photos]):
        target = dest_dir / f"temp_photo_{valuation_id}_{index}.jpg"
        try:
            resp = httpx.get(url, timeout=timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log(f"   ⚠️ 照片下载失败 #{index}: {e}", "warn")
            continue
        if resp.status_code != 200:
            log(f"   ⚠️ 照片下载失败 #{index}: HTTP {resp.status_code}", "warn")
            continue
        try:
            target.write_bytes(resp.content)
        except OSError as e:
            log(f"   ⚠️ 照片保存失败 #{index}: {e}", "warn")
            continue
        saved.append(target)
    return saved


def make_photo_dir(valuation_id: int) -> Path:
    return Path(tempfile.mkdtemp(prefix=f"claimautopilot_{valuation_id}_"))


def cleanup_photos(paths: list[Path], dest_dir: Optional[Path] = None) -> None:
    for path in paths:
        path.unlink(missing_ok=True)
    if dest_dir is not None:
        shutil.rmtree(dest_dir, ignore_errors=True)
