"""ViewModel for browsing the library and editing image metadata."""

from __future__ import annotations

from collections.abc import Iterable
import concurrent.futures

from loguru import logger

from app.viewmodels.image_vm import ImageVM
from core.models import (
    EMPTY_METADATA,
    BrowseMode,
    FolderInfo,
    ImageMetadata,
    ImageReference,
    MetadataField,
    MetadataGroups,
    SortOrder,
    TagWithCount,
)
from core.services.edit_buffer import MetadataEditBuffer
from core.services.interfaces import (
    BulkSaveResult,
    FolderLoadResult,
    IFavoritesStore,
    IIntervalTimer,
    IMetadataStore,
    ImageNotFoundError,
    StoreError,
)
from core.services.metadata_index import MetadataIndex
from core.services.mutation_service import MutationService
from core.services.navigation import (
    DEFAULT_INTERVAL_SECONDS,
    AdvanceDirection,
    AutoAdvance,
    NavigationController,
)
from core.services.sort_service import SortService


class LibraryVM:
    """Library view-model.

    Owns the browse state of one library session: the active image list and
    its visible projection, the per-list metadata and path caches, the
    metadata index, favorites, bulk selection, the metadata editor, and
    navigation with auto-advance.
    """

    def __init__(
        self,
        store: IMetadataStore,
        timer: IIntervalTimer,
        *,
        favorites_store: IFavoritesStore | None = None,
        sorter: SortService | None = None,
        max_workers: int = 8,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        """Create a LibraryVM.

        Args:
            store: Metadata store providing folders, images and records.
            timer: Interval timer driving auto-advance.
            favorites_store: Optional persistence for the favorite set.
            sorter: Filter/sort service (defaults to `SortService`).
            max_workers: Thread count used to load metadata and paths of a list.
            interval_seconds: Initial auto-advance interval.
        """
        self._store = store
        self._favorites_store = favorites_store
        self._sorter = sorter or SortService()
        self._max_workers = max(1, int(max_workers))

        self._index = MetadataIndex()
        self._metadata: dict[ImageReference, ImageMetadata] = {}
        self._paths: dict[ImageReference, str] = {}
        self._mutations = MutationService(store, self._index, self._metadata)
        self._nav = NavigationController()
        self._auto = AutoAdvance(self._nav, timer, interval_seconds)

        self.folders: list[FolderInfo] = []
        self.browse_mode = BrowseMode.FOLDERS
        self.selected_folder: str | None = None
        self.metadata_field = MetadataField.TAGS
        self.selected_value: str | None = None
        self.sort_order = SortOrder.NONE
        self.only_no_metadata = False
        self.last_load = FolderLoadResult()

        self._refs: list[ImageReference] = []
        self._visible: list[ImageReference] = []
        self._favorites: dict[ImageReference, None] = {}

        self.bulk_edit_mode = False
        self._bulk_selection: set[ImageReference] = set()
        self.editor: MetadataEditBuffer | None = None
        self._editor_target: ImageReference | None = None
        self._editor_is_bulk = False

        if self._favorites_store is not None:
            self._favorites = dict.fromkeys(self._favorites_store.load())

    # ----- library and groups -----
    def load_folders(self) -> list[FolderInfo]:
        """Enumerate folders, index the corpus and open the first folder."""
        self.folders = self._store.list_folders()
        self.refresh_groups()
        logger.info("Library loaded: {} folders", len(self.folders))
        if self.folders and self.browse_mode is BrowseMode.FOLDERS:
            self.select_folder(self.folders[0].name)
        return self.folders

    def refresh_groups(self) -> MetadataGroups:
        """Rebuild the metadata index from the whole stored corpus."""
        return self._index.rebuild(dict(self._store.iter_metadata()))

    @property
    def groups(self) -> MetadataGroups:
        return self._index.groups

    def tag_counts(self) -> list[TagWithCount]:
        return self._index.tag_counts()

    def metadata_values(self) -> list[tuple[str, int]]:
        """Values of the selected metadata field with their image counts."""
        return self._index.values(self.metadata_field)

    # ----- browse modes -----
    def set_browse_mode(self, mode: BrowseMode) -> None:
        """Switch the grouping strategy of the image list."""
        self.browse_mode = mode
        logger.info("Browse mode: {}", mode.value)
        if mode is BrowseMode.FOLDERS:
            if self.selected_folder:
                self.select_folder(self.selected_folder)
            else:
                self._load_list([])
        elif mode is BrowseMode.METADATA:
            self.refresh_groups()
            if self.selected_value is not None:
                self.select_metadata_value(self.selected_value)
            else:
                self._load_list([])
        else:
            self._load_list(list(self._favorites))

    def select_folder(self, folder: str) -> list[ImageReference]:
        """Show every image of `folder`; a missing folder shows an empty list."""
        try:
            names = self._store.list_images(folder)
        except ImageNotFoundError as ex:
            logger.warning("Folder unavailable {}: {}", folder, ex)
            names = []
        except StoreError as ex:
            logger.error("Listing images failed for {}: {}", folder, ex)
            raise
        self.browse_mode = BrowseMode.FOLDERS
        self.selected_folder = folder
        self._load_list([ImageReference(folder=folder, image=name) for name in names])
        return self.visible_refs

    def select_metadata_field(self, metadata_field: MetadataField) -> None:
        """Change the grouping field; clears the value selection and the list."""
        self.browse_mode = BrowseMode.METADATA
        self.metadata_field = metadata_field
        self.selected_value = None
        self._load_list([])

    def select_metadata_value(self, value: str) -> list[ImageReference]:
        """Show the images carrying `value`; unknown values show an empty list."""
        self.browse_mode = BrowseMode.METADATA
        self.selected_value = value
        self._load_list(self._index.refs_for(self.metadata_field, value))
        return self.visible_refs

    # ----- list projection -----
    @property
    def image_refs(self) -> list[ImageReference]:
        """Active list before filtering and sorting."""
        return list(self._refs)

    @property
    def visible_refs(self) -> list[ImageReference]:
        """Filtered and sorted projection the navigation runs over."""
        return list(self._visible)

    def toggle_sort_order(self) -> SortOrder:
        """Cycle none -> asc -> desc -> none, keeping the current image selected."""
        self.sort_order = self.sort_order.cycled()
        self._refresh_visible(keep_position=True)
        return self.sort_order

    def toggle_only_no_metadata(self) -> bool:
        """Show only images without metadata, or everything again."""
        self.only_no_metadata = not self.only_no_metadata
        self._refresh_visible(keep_position=False)
        return self.only_no_metadata

    def metadata_for(self, ref: ImageReference) -> ImageMetadata | None:
        """Cached record of a listed image; None when absent or failed to load."""
        return self._metadata.get(ref)

    def path_for(self, ref: ImageReference) -> str | None:
        return self._paths.get(ref)

    def image_vms(self) -> list[ImageVM]:
        """Bindings for every visible image."""
        return [self._image_vm(ref) for ref in self._visible]

    def _image_vm(self, ref: ImageReference) -> ImageVM:
        return ImageVM(
            ref=ref,
            metadata=self._metadata.get(ref),
            path=self._paths.get(ref),
            is_favorite=ref in self._favorites,
            is_selected=ref in self._bulk_selection,
        )

    def _load_list(self, refs: list[ImageReference]) -> None:
        self._refs = list(refs)
        self.last_load = self._populate(self._refs)
        self._metadata.clear()
        self._metadata.update(self.last_load.metadata)
        self._paths = dict(self.last_load.paths)
        self._bulk_selection.intersection_update(self._refs)
        self._refresh_visible(keep_position=False)

    def _populate(self, refs: list[ImageReference]) -> FolderLoadResult:
        """Load metadata and paths concurrently; merge by reference, in list order."""
        result = FolderLoadResult()
        if not refs:
            return result

        loaded: dict[ImageReference, tuple[str | None, ImageMetadata | None, list[str]]] = {}
        workers = min(self._max_workers, len(refs))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_ref = {executor.submit(self._load_one, ref): ref for ref in refs}
            for future in concurrent.futures.as_completed(future_to_ref):
                loaded[future_to_ref[future]] = future.result()

        for ref in refs:
            path, metadata, errors = loaded[ref]
            if path is not None:
                result.paths[ref] = path
            if metadata is not None:
                result.metadata[ref] = metadata
            for reason in errors:
                result.failed.append((ref, reason))

        if result.failed:
            logger.warning("{} of {} images failed to load", len(result.failed), len(refs))
        return result

    def _load_one(
        self, ref: ImageReference
    ) -> tuple[str | None, ImageMetadata | None, list[str]]:
        errors: list[str] = []
        path: str | None = None
        metadata: ImageMetadata | None = None
        try:
            path = self._store.resolve_path(ref.folder, ref.image)
        except StoreError as ex:
            logger.warning("Resolve path failed for {}: {}", ref.key, ex)
            errors.append(str(ex))
        try:
            metadata = self._store.load_metadata(ref.folder, ref.image)
        except StoreError as ex:
            logger.warning("Load metadata failed for {}: {}", ref.key, ex)
            errors.append(str(ex))
        return path, metadata, errors

    def _refresh_visible(self, keep_position: bool) -> None:
        """Recompute the visible list; either keep the current image or go to the first."""
        previous_ref = self.current_ref
        previous_index = self._nav.current_index
        self._visible = self._sorter.filter_and_sort(
            self._refs, self.sort_order, self.only_no_metadata, self._metadata.get
        )
        self._auto.stop()
        self._nav.reset(len(self._visible))
        if not keep_position:
            return
        if previous_ref is not None and previous_ref in self._visible:
            self._nav.select(self._visible.index(previous_ref))
        elif previous_index is not None:
            self._nav.select(previous_index)

    # ----- current image and navigation -----
    @property
    def current_index(self) -> int | None:
        return self._nav.current_index

    @property
    def current_ref(self) -> ImageReference | None:
        index = self._nav.current_index
        if index is None or index >= len(self._visible):
            return None
        return self._visible[index]

    @property
    def current_folder(self) -> str | None:
        """Folder of the current image; falls back to the selected folder."""
        ref = self.current_ref
        return ref.folder if ref is not None else self.selected_folder

    @property
    def current_metadata(self) -> ImageMetadata | None:
        ref = self.current_ref
        return self._metadata.get(ref) if ref is not None else None

    def current_image_vm(self) -> ImageVM | None:
        ref = self.current_ref
        return self._image_vm(ref) if ref is not None else None

    def select_image(self, ref: ImageReference) -> bool:
        """Make `ref` current; returns False when it is not visible."""
        if ref not in self._visible:
            return False
        self._nav.select(self._visible.index(ref))
        return True

    def next_image(self) -> bool:
        return self._nav.next()

    def prev_image(self) -> bool:
        return self._nav.prev()

    def neighbor_refs(self) -> tuple[ImageReference | None, ...]:
        """Previous, current and next images for the three-up viewer."""
        return tuple(None if i is None else self._visible[i] for i in self._nav.neighbors())

    # ----- enlarged viewer and auto-advance -----
    @property
    def viewer_open(self) -> bool:
        return self._auto.viewer_open

    @property
    def auto_advance(self) -> AdvanceDirection:
        return self._auto.direction

    @property
    def auto_advance_interval(self) -> int:
        return self._auto.interval_seconds

    def open_viewer(self, index: int | None = None) -> None:
        self._auto.enter_viewer(index)

    def close_viewer(self) -> None:
        self._auto.exit_viewer()

    def toggle_auto_advance(self) -> bool:
        return self._auto.toggle_forward()

    def toggle_auto_advance_reverse(self) -> bool:
        return self._auto.toggle_reverse()

    def set_auto_advance_interval(self, seconds: int) -> int:
        return self._auto.set_interval(seconds)

    # ----- favorites -----
    @property
    def favorites(self) -> list[ImageReference]:
        """Favorite images in toggle order."""
        return list(self._favorites)

    def is_favorite(self, ref: ImageReference) -> bool:
        return ref in self._favorites

    def toggle_favorite(self, ref: ImageReference | None = None) -> bool:
        """Toggle `ref` (default: current image); returns the new favorite state."""
        if ref is None:
            ref = self.current_ref
        if ref is None:
            return False
        if ref in self._favorites:
            del self._favorites[ref]
            state = False
        else:
            self._favorites[ref] = None
            state = True
        self._save_favorites()
        if self.browse_mode is BrowseMode.FAVORITES:
            self._refs = list(self._favorites)
            for added in self._refs:
                if added not in self._paths:
                    loaded = self._populate([added])
                    self._paths.update(loaded.paths)
                    self._metadata.update(loaded.metadata)
            self._refresh_visible(keep_position=True)
        return state

    def _save_favorites(self) -> None:
        if self._favorites_store is None:
            return
        try:
            self._favorites_store.save(list(self._favorites))
        except StoreError as ex:
            logger.error("Saving favorites failed: {}", ex)

    # ----- bulk selection -----
    @property
    def bulk_selection(self) -> set[ImageReference]:
        return set(self._bulk_selection)

    def toggle_bulk_edit_mode(self) -> bool:
        """Enter or leave bulk-edit mode; leaving clears the selection."""
        self.bulk_edit_mode = not self.bulk_edit_mode
        if not self.bulk_edit_mode:
            self._bulk_selection.clear()
        return self.bulk_edit_mode

    def toggle_image_selection(self, ref: ImageReference) -> bool:
        if ref in self._bulk_selection:
            self._bulk_selection.discard(ref)
            return False
        self._bulk_selection.add(ref)
        return True

    def select_all_images(self) -> None:
        """Select every visible image."""
        self._bulk_selection = set(self._visible)

    def deselect_all_images(self) -> None:
        self._bulk_selection.clear()

    # ----- metadata editor -----
    def open_editor(self) -> MetadataEditBuffer:
        """Edit the current image, starting from its freshest stored record."""
        ref = self.current_ref
        initial = EMPTY_METADATA
        if ref is not None:
            try:
                initial = self._store.load_metadata(ref.folder, ref.image) or EMPTY_METADATA
            except StoreError as ex:
                logger.warning("Reload before edit failed for {}: {}", ref.key, ex)
                initial = self._metadata.get(ref) or EMPTY_METADATA
        self.editor = MetadataEditBuffer(initial)
        self._editor_target = ref
        self._editor_is_bulk = False
        return self.editor

    def open_bulk_editor(self) -> MetadataEditBuffer:
        """Edit the bulk selection; the buffer starts empty and overwrites every field."""
        self.editor = MetadataEditBuffer.for_bulk()
        self._editor_target = None
        self._editor_is_bulk = True
        return self.editor

    def cancel_editor(self) -> None:
        self.editor = None
        self._editor_target = None
        self._editor_is_bulk = False

    def editor_suggestions(self) -> list[TagWithCount]:
        """Existing tags not yet in the editor buffer."""
        if self.editor is None:
            return []
        return self.editor.suggestions(self._index.tag_counts())

    def save_editor(self) -> ImageMetadata:
        """Save the single-image editor.

        On failure the error propagates, the editor stays open and the previous
        record remains current.
        """
        if self.editor is None or self._editor_is_bulk or self._editor_target is None:
            raise RuntimeError("No single-image editor is open")
        saved = self._mutations.save_one(self._editor_target, self.editor.to_metadata())
        self.cancel_editor()
        self._reproject_after_save()
        return saved

    def save_bulk_editor(self) -> BulkSaveResult:
        """Save the bulk editor to every selected image.

        Successfully written images leave the selection; bulk-edit mode ends
        when every write succeeded.
        """
        if self.editor is None or not self._editor_is_bulk:
            raise RuntimeError("No bulk editor is open")
        if not self._bulk_selection:
            return BulkSaveResult()
        ordered = [ref for ref in self._refs if ref in self._bulk_selection]
        ordered += sorted(self._bulk_selection.difference(ordered))
        result = self._mutations.save_bulk(ordered, self.editor.to_metadata())
        self._bulk_selection = {ref for ref, _reason in result.failed}
        if result.ok:
            self.bulk_edit_mode = False
            self.cancel_editor()
        self._reproject_after_save()
        return result

    def save_metadata(self, ref: ImageReference, metadata: ImageMetadata) -> ImageMetadata:
        """Save `metadata` for `ref` without going through the editor."""
        saved = self._mutations.save_one(ref, metadata)
        self._reproject_after_save()
        return saved

    def save_bulk_metadata(
        self, refs: Iterable[ImageReference], metadata: ImageMetadata
    ) -> BulkSaveResult:
        result = self._mutations.save_bulk(refs, metadata)
        self._reproject_after_save()
        return result

    def _reproject_after_save(self) -> None:
        """Re-derive the list of the selected value and re-apply the filter after a save.

        Saved images may have left or joined the selected value. The visible
        list is only replaced when it changed, so a running auto-advance
        survives saves that do not affect it.
        """
        if self.browse_mode is BrowseMode.METADATA and self.selected_value is not None:
            refs = self._index.refs_for(self.metadata_field, self.selected_value)
            listed = set(self._refs)
            added = self._populate([ref for ref in refs if ref not in listed])
            self._paths.update(added.paths)
            for ref, metadata in added.metadata.items():
                self._metadata.setdefault(ref, metadata)
            self._refs = refs
            self._bulk_selection.intersection_update(self._refs)
        visible = self._sorter.filter_and_sort(
            self._refs, self.sort_order, self.only_no_metadata, self._metadata.get
        )
        if visible != self._visible:
            self._refresh_visible(keep_position=True)
