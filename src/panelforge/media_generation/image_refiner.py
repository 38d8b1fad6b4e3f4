"""Image refinement through the Dashscope image-edit API"""

import asyncio
import base64
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiohttp

from ..utils.errors import RefinementError, RefinementTimeout

Sleep = Callable[[float], Awaitable[None]]


class DashscopeImageRefiner:
    """
    Submit/poll/fetch client for asynchronous image edits.

    The total wait is bounded by ``poll_interval * max_polls``; running out of
    polls raises ``RefinementTimeout``.
    """

    def __init__(self,
                 api_key: str,
                 model: str,
                 submit_url: str,
                 task_url: str,
                 poll_interval: float = 5.0,
                 max_polls: int = 60,
                 request_timeout: float = 60.0,
                 session: Optional[aiohttp.ClientSession] = None,
                 sleep: Optional[Sleep] = None):
        self.api_key = api_key
        self.model = model
        self.submit_url = submit_url
        self.task_url = task_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.request_timeout = request_timeout
        self.session = session
        self._owns_session = session is None
        self.sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger('panelforge.image_refiner')

    @classmethod
    def from_config(cls, config, **kwargs) -> "DashscopeImageRefiner":
        refine = config.refine
        return cls(
            api_key=config.api_keys.require("dashscope"),
            model=refine.model,
            submit_url=refine.submit_url,
            task_url=refine.task_url,
            poll_interval=refine.poll_interval,
            max_polls=refine.max_polls,
            request_timeout=refine.request_timeout,
            **kwargs,
        )

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    def _headers(self, asynchronous: bool = False) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if asynchronous:
            headers["Content-Type"] = "application/json"
            headers["X-DashScope-Async"] = "enable"
        return headers

    async def edit(self, image_path: str, instruction: str, output_path: str) -> str:
        """Apply ``instruction`` to ``image_path`` and write the result to ``output_path``"""
        if self.session is None:
            async with self:
                return await self.edit(image_path, instruction, output_path)

        image_b64 = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
        payload = {
            "model": self.model,
            "input": {"prompt": instruction, "base_image_url": f"data:image/png;base64,{image_b64}"},
        }

        async with self.session.post(self.submit_url, json=payload, headers=self._headers(True)) as resp:
            data = await resp.json()
        task_id = (data.get("output") or {}).get("task_id")
        if not task_id:
            raise RefinementError(f"Dashscope submit failed: {data}")

        for _ in range(self.max_polls):
            await self.sleep(self.poll_interval)
            async with self.session.get(self.task_url.format(task_id=task_id),
                                        headers=self._headers()) as resp:
                status = await resp.json()
            output = status.get("output") or {}
            task_status = output.get("task_status")

            if task_status == "SUCCEEDED":
                results = output.get("results") or []
                url = results[0].get("url") if results else None
                if not url:
                    raise RefinementError("Dashscope task succeeded without a result URL")
                async with self.session.get(url) as img_resp:
                    img_resp.raise_for_status()
                    content = await img_resp.read()
                Path(output_path).write_bytes(content)
                self.logger.info(f"Refined: {Path(output_path).name} ({len(content) / 1024:.0f}KB)")
                return output_path

            if task_status == "FAILED":
                raise RefinementError(f"Dashscope failed: {output.get('message')}")

        waited = self.poll_interval * self.max_polls
        raise RefinementTimeout(f"Dashscope timeout after {waited:.0f}s")
