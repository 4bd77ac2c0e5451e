from setuptools import setup, find_packages

setup(
    name="intent-copilot",
    version="1.0.0",
    description="Copilot - streaming generation of chatbot intents and agents with staged, resumable persistence",
    author="Your Name",
    packages=find_packages(include=["copilot", "copilot.*"]),
    include_package_data=True,
    package_data={
        "copilot.config.prompts": ["templates/*.j2"],
    },
    install_requires=[
        # Core data modeling and validation
        "pydantic>=2.0.0",

        # Async HTTP client (LLM providers and backend resources)
        "httpx>=0.25.0",

        # Environment variables
        "python-dotenv>=1.0.0",

        # CLI and rich output
        "typer>=0.9.0",
        "rich>=13.0.0",

        # Jinja2 for prompt templates
        "jinja2>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "copilot = copilot.app.main:main",
        ],
    },
    python_requires=">=3.11",
)
