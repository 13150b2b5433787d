import setuptools

setuptools.setup(
    name="tcg_card_cache",
    version="0.1",
    description="Pokémon TCG card image cache: bulk download, analysis and maintenance tools",
    packages=["services", "repositories", "utils"],
    py_modules=["main"],
    classifiers=["Programming Language :: Python :: 3", "Operating System :: OS Independent"],
    python_requires=">=3.11",
    install_requires=[
        "loguru",
        "pillow",  # Used by --verify to decode cached images
        "curl_cffi",
        "tenacity",  # Retry with exponential backoff for API and image requests
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["tcg-card-cache=main:main"]},
)
