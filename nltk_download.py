#!/usr/bin/env python3
import sys

import nltk


def download_nltk_resources(download_dir=None):
    resources = {'stopwords': 'corpora/stopwords'}

    print("Downloading NLTK resources...")
    for resource in resources:
        try:
            print(f"Downloading {resource}...")
            nltk.download(resource, download_dir=download_dir)
            print(f"✅ {resource} downloaded successfully")
        except Exception as e:
            print(f"❌ Error downloading {resource}: {str(e)}")

    print("\nVerifying installation:")
    all_found = True
    for resource, path in resources.items():
        try:
            nltk.data.find(path)
            print(f"✅ {resource} verified successfully")
        except LookupError:
            print(f"❌ {resource} is not available")
            all_found = False
    return all_found


if __name__ == "__main__":
    target_dir = sys.argv[1] if len(sys.argv) > 1 else None
    if target_dir:
        nltk.data.path.append(target_dir)
    sys.exit(0 if download_nltk_resources(target_dir) else 1)
