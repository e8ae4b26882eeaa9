"""
Upload files through an XMPP server's HTTP upload service
"""
import asyncio
from xmppupload import UploadClient, UploadContext
from xmppupload.core.xmpp.session import connect


async def main():
    session = await connect("alice@example.org", "secret")

    async with UploadClient(session) as client:
        descriptor = await client.discover()
        print(f"Upload service: {descriptor.address}")

        # Simple upload
        result = await client.upload_file("document.pdf")
        print(result.get_url or f"Failed: {result.error}")

        # Upload bytes with a progress callback
        def on_progress(progress):
            print(f"Progress: {progress.percentage:.1f}%")

        result = await client.upload_bytes("notes.txt", b"hello", progress=on_progress)
        print(result.get_url or f"Failed: {result.error}")

        # Give up after a minute
        result = await client.upload_file(
            "large_file.zip",
            context=UploadContext(timeout=60)
        )
        print(result.get_url or f"Failed: {result.error}")

    await session.close()


if __name__ == "__main__":
    asyncio.run(main())
