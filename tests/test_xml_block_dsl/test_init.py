"""Test module for xml_block_dsl package initialization."""


def test_package_import() -> None:
    """Test that the package can be imported successfully."""
    # Arrange & Act
    import xml_block_dsl

    # Assert
    assert xml_block_dsl is not None


def test_package_has_version() -> None:
    """Test that the package has a version attribute."""
    # Arrange & Act
    import xml_block_dsl

    # Assert
    assert isinstance(xml_block_dsl.__version__, str)
    assert xml_block_dsl.__version__ == "0.1.0"


def test_package_has_author() -> None:
    """Test that the package has an author attribute."""
    # Arrange & Act
    import xml_block_dsl

    # Assert
    assert xml_block_dsl.__author__ == "XML Block DSL Team"


def test_package_all_exports() -> None:
    """Test that every name in __all__ is importable from the package."""
    # Arrange & Act
    import xml_block_dsl

    # Assert
    for name in xml_block_dsl.__all__:
        assert hasattr(xml_block_dsl, name), name
    assert "new_document" in xml_block_dsl.__all__
    assert "XDocumentBuilder" in xml_block_dsl.__all__
