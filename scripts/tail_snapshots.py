# scripts/tail_snapshots.py
import argparse, asyncio, json
from redis import asyncio as aioredis
from common.logging import get_logger

TOPIC = "snapshots"   # match config snapshot.topic
REDIS_URL = "redis://127.0.0.1:6379/0"

log = get_logger("tail_snapshots")

async def main(redis_url: str, topic: str):
    log.info(f"Tailing {topic}/imagedata and {topic}/metadata on {redis_url}")
    r = aioredis.from_url(redis_url, decode_responses=False)
    pubsub = r.pubsub()
    await pubsub.subscribe(f"{topic}/imagedata", f"{topic}/metadata")
    try:
        async for msg in pubsub.listen():
            if msg.get("type") != "message":
                continue
            channel = msg["channel"].decode()
            data = msg["data"]
            if channel.endswith("/metadata"):
                log.info(f"{channel} {json.dumps(json.loads(data), ensure_ascii=False)}")
            else:
                log.info(f"{channel} {len(data)} bytes head={data[:4].hex()}")
    finally:
        await pubsub.close()
        await r.close()

if __name__ == "__main__":
    p = argparse.ArgumentParser(description="Log snapshot messages as they arrive.")
    p.add_argument("--redis-url", default=REDIS_URL)
    p.add_argument("--topic", default=TOPIC)
    args = p.parse_args()
    asyncio.run(main(args.redis_url, args.topic))
