"""
Run uploads as tasks and follow their progress
"""
import asyncio
from xmppupload import UploadClient, UploadContext
from xmppupload.core.xmpp.session import connect


async def follow(name, channel):
    async for progress in channel:
        print(f"{name}: {progress.percentage:.1f}%")
    print(f"{name}: {channel.result.get_url or channel.result.error}")


async def main():
    session = await connect("alice@example.org", "secret")

    async with UploadClient(session) as client:
        await client.discover()

        # Several uploads share one connection pool
        uploads = [client.start_upload_file(name) for name in ("a.jpg", "b.jpg")]
        await asyncio.gather(*[
            follow(f"upload {i}", channel) for i, (_, channel) in enumerate(uploads)
        ])

        # Cancel an upload through its context
        context = UploadContext()
        task, channel = client.start_upload_file("video.mp4", context=context)
        await asyncio.sleep(1)
        context.cancel()
        result = await task
        print(f"Sent {result.bytes_sent} of {result.total_bytes} bytes: {result.error}")

    await session.close()


if __name__ == "__main__":
    asyncio.run(main())
