"""
Claim Autopilot - DAT myClaim form-filling agent

从数据库读取待处理估价记录，驱动浏览器填写理赔门户表单并回写状态。
"""

from __future__ import annotations

from dotenv import find_dotenv, load_dotenv

# Auto-load project .env once on package import.
# Portal credentials (DAT_*) and DATABASE_URL normally live there.
load_dotenv(find_dotenv(usecwd=True), override=False)
