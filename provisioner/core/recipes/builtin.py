"""
Built-in recipes — used when provision.yml declares none.

Link sources are relative to the base directory (the dotfiles
checkout) and optional, so a checkout that lacks e.g. ``tmux/`` still
provisions cleanly.
"""

from __future__ import annotations

from provisioner.core.recipes.declarative import LinkSpec, RecipeSpec

DEFAULT_RECIPES: tuple[RecipeSpec, ...] = (
    RecipeSpec(
        name="libs",
        description="Base libraries and command-line tools",
        critical=True,
        packages=["curl", "git", "ripgrep", "fd", "fzf"],
    ),
    RecipeSpec(
        name="zsh",
        description="Z shell and its configuration",
        critical=True,
        requires=["libs"],
        packages=["zsh"],
        directories=["${CONFIG_HOME}/zsh"],
        links=[
            LinkSpec(source="zsh/zshrc", destination="~/.zshrc", optional=True),
            LinkSpec(source="zsh/zshenv", destination="~/.zshenv", optional=True),
        ],
    ),
    RecipeSpec(
        name="git",
        description="Git configuration",
        requires=["libs"],
        links=[
            LinkSpec(source="git/gitconfig", destination="~/.gitconfig", optional=True),
            LinkSpec(source="git/gitignore", destination="${CONFIG_HOME}/git/ignore", optional=True),
        ],
    ),
    RecipeSpec(
        name="tmux",
        description="Terminal multiplexer",
        requires=["libs"],
        packages=["tmux"],
        links=[
            LinkSpec(source="tmux/tmux.conf", destination="~/.tmux.conf", optional=True),
        ],
    ),
    RecipeSpec(
        name="nvim",
        description="Neovim and its configuration",
        requires=["libs"],
        packages=["neovim"],
        links=[
            LinkSpec(source="nvim", destination="${CONFIG_HOME}/nvim", optional=True),
        ],
    ),
    RecipeSpec(
        name="go",
        description="Go toolchain",
        requires=["libs"],
        packages=["go"],
        directories=["~/go/bin"],
        files={
            "${CONFIG_HOME}/zsh/go.zsh": (
                'export GOPATH="$HOME/go"\n'
                'export PATH="$GOPATH/bin:$PATH"\n'
            ),
        },
    ),
)


def default_recipe_specs() -> list[RecipeSpec]:
    return list(DEFAULT_RECIPES)
