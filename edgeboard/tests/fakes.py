"""In-memory stand-in for the redis.asyncio commands the store adapter uses."""
import asyncio
import json

from redis.exceptions import ConnectionError as RedisConnectionError


class FakeRedis:
    def __init__(self):
        self.zsets = {}
        self.hashes = {}
        self.strings = {}
        self.sets = {}
        self.calls = []
        self.fail_commands = set()
        self.hmget_reply = None
        self.delay = 0.0

    async def _enter(self, command):
        self.calls.append(command)
        if self.delay:
            await asyncio.sleep(self.delay)
        if command in self.fail_commands:
            raise RedisConnectionError(f"{command}: connection refused")

    # sorted sets
    async def zadd(self, name, mapping):
        await self._enter('zadd')
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for m in mapping if m not in zset)
        zset.update(mapping)
        return added

    async def zrange(self, name, start, end, desc=False, withscores=False):
        await self._enter('zrange')
        items = sorted(self.zsets.get(name, {}).items(), key=lambda kv: (kv[1], kv[0]), reverse=desc)
        stop = len(items) if end == -1 else end + 1
        selected = items[start:stop]
        if withscores:
            return [(m, s) for m, s in selected]
        return [m for m, _ in selected]

    async def zmscore(self, name, members):
        await self._enter('zmscore')
        zset = self.zsets.get(name, {})
        return [zset.get(m) for m in members]

    async def zcard(self, name):
        await self._enter('zcard')
        return len(self.zsets.get(name, {}))

    # strings
    async def get(self, name):
        await self._enter('get')
        return self.strings.get(name)

    async def set(self, name, value):
        await self._enter('set')
        self.strings[name] = value

    # hashes
    async def hmget(self, name, keys):
        await self._enter('hmget')
        if self.hmget_reply is not None:
            return self.hmget_reply(name, keys)
        h = self.hashes.get(name, {})
        return [h.get(k) for k in keys]

    async def hget(self, name, key):
        await self._enter('hget')
        return self.hashes.get(name, {}).get(key)

    async def hset(self, name, key, value):
        await self._enter('hset')
        self.hashes.setdefault(name, {})[key] = value

    # sets
    async def smembers(self, name):
        await self._enter('smembers')
        return set(self.sets.get(name, set()))

    async def aclose(self):
        self.calls.append('aclose')

    # seeding helpers (synchronous, no call tracking)
    def seed_row(self, row_key, opportunity_id, row):
        self.hashes.setdefault(row_key, {})[opportunity_id] = row if isinstance(row, str) else json.dumps(row)

    def seed_ranking(self, key, scores):
        self.zsets.setdefault(key, {}).update(scores)
