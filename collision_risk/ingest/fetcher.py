import os
import requests
from collision_risk.config import Config


class CollisionFetcher:
    # Direct CSV export link for the NYC Open Data portal
    COLLISION_URL = Config.NYC_COLLISION_URL
    FILENAME = "nyc_collisions_raw.csv"

    def __init__(self, data_dir):
        self.data_dir = data_dir
        os.makedirs(data_dir, exist_ok=True)

    def download_collisions(self, url=None, timeout=60):
        local_path = os.path.join(self.data_dir, self.FILENAME)

        if os.path.exists(local_path) and os.path.getsize(local_path) > 0:
            print("  ↪ Collision data already exists locally.")
            return local_path

        url = url or self.COLLISION_URL
        if not url:
            raise ValueError("No collision export URL configured (set NYC_COLLISION_URL).")

        print("Downloading NYC Collision Data (this may take a while)...")
        tmp_path = local_path + ".part"
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            with open(tmp_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=1024*1024):
                    if chunk:
                        f.write(chunk)
        os.replace(tmp_path, local_path)
        return local_path
