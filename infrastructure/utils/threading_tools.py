import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Any

# Отдельный пул для фоновых задач, чтобы не занимать пул запросов
background_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="alarm-jobs")


async def run_in_executor(func: Callable, *args, executor: ThreadPoolExecutor = background_executor, **kwargs) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, lambda: func(*args, **kwargs))
